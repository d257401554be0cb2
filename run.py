#!/usr/bin/env python3
"""Backup runner (for cron or manual runs without installing the package)"""
from portainer_backup.cli import main

if __name__ == '__main__':
    main()

"""
Per-stack content extraction.

For each stack this writes, below <run_dir>/<endpoint>/:
- stack_<name>-<id>.yaml           compose content, when Portainer has it inline
- stack_<name>-<id>.metadata.json  always
- stack_<name>-<id>.README.txt     git-backed stacks without inline content

GET /api/stacks/{id}/file answers either with a JSON envelope
({"StackFileContent": "..."}) or with the raw compose text. Git and
Kubernetes stacks often have no inline content at all; that is a normal
outcome, not an error.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..api.client import PortainerClient, StackFileResponse, TransportError
from ..models import Stack, StackArtifact


logger = logging.getLogger(__name__)

UNSAFE_NAME_CHARS = str.maketrans({' ': '_', '/': '_', ':': '_'})

# Always .yaml, whatever the content looks like
COMPOSE_EXTENSION = 'yaml'


@dataclass(frozen=True)
class EnvelopeContent:
    """Content taken from the StackFileContent field of a JSON envelope"""
    text: str


@dataclass(frozen=True)
class RawContent:
    """Response body used verbatim as compose content"""
    text: str


@dataclass(frozen=True)
class ContentAbsent:
    """No inline content; reason is for the log only"""
    reason: str
    ambiguous: bool = False


DecodedStackFile = Union[EnvelopeContent, RawContent, ContentAbsent]


def sanitize_name(name: str) -> str:
    """Replace space, '/' and ':' with '_' (one for one, not collapsed)."""
    return str(name).translate(UNSAFE_NAME_CHARS)


def decode_stack_file(response: StackFileResponse) -> DecodedStackFile:
    """
    Classify a stack file response by its first character.

    A body starting with '{' is a JSON envelope and its StackFileContent
    field is the compose content. Any other body is used verbatim, whatever
    content type the server declared.

    Args:
        response: Body and content type from the API

    Returns:
        EnvelopeContent, RawContent or ContentAbsent
    """
    text = response.text or ''
    if not text.strip():
        return ContentAbsent('empty response')

    if not text.startswith('{'):
        if response.declares_json:
            logger.debug("JSON content type but body is not an object, using it verbatim")
        return RawContent(text)

    try:
        document = json.loads(text)
    except ValueError as e:
        return ContentAbsent(f'unparseable JSON envelope: {e}', ambiguous=True)

    content = document.get('StackFileContent')
    if isinstance(content, str) and content:
        return EnvelopeContent(content)
    return ContentAbsent('StackFileContent missing')


class StackExtractor:
    """
    Writes the backup files for single stacks.

    `extract` never raises; failures are logged and recorded on the
    returned StackArtifact so the remaining stacks still get processed.
    """

    def __init__(self, client: PortainerClient):
        self.client = client

    def extract(self, stack: Stack, endpoint_name: str, run_dir) -> StackArtifact:
        """
        Back up one stack.

        Args:
            stack: Stack to back up
            endpoint_name: Display name of the stack's endpoint
            run_dir: Directory of the current run

        Returns:
            StackArtifact describing the written files
        """
        artifact = StackArtifact(
            stack_id=stack.id,
            stack_name=stack.name,
            endpoint_name=endpoint_name
        )
        logger.info(f"  - {endpoint_name}: Stack '{stack.name}' (ID {stack.id})")

        try:
            self._extract(stack, endpoint_name, Path(run_dir), artifact)
        except Exception as e:
            artifact.error = str(e)
            logger.error(f"Failed to back up stack '{stack.name}' (ID {stack.id}): {e}")

        return artifact

    def _extract(self, stack: Stack, endpoint_name: str, run_dir: Path, artifact: StackArtifact):
        target_dir = run_dir / sanitize_name(endpoint_name)
        target_dir.mkdir(parents=True, exist_ok=True)

        base_name = f'stack_{sanitize_name(stack.name)}-{stack.id}'
        content = self.fetch_content(stack)

        if isinstance(content, ContentAbsent):
            logger.info(f"    (StackFileContent missing - writing metadata) [{content.reason}]")
        else:
            content_path = target_dir / f'{base_name}.{COMPOSE_EXTENSION}'
            with open(content_path, 'w', encoding='utf-8', newline='') as f:
                f.write(content.text)
            artifact.content_path = content_path

        metadata_path = target_dir / f'{base_name}.metadata.json'
        with open(metadata_path, 'w', encoding='utf-8') as f:
            json.dump(stack.metadata(), f, indent=2, ensure_ascii=False)
            f.write('\n')
        artifact.metadata_path = metadata_path

        if isinstance(content, ContentAbsent) and stack.git_url:
            readme_path = target_dir / f'{base_name}.README.txt'
            readme_path.write_text(git_readme(stack), encoding='utf-8')
            artifact.readme_path = readme_path

    def fetch_content(self, stack: Stack) -> DecodedStackFile:
        """Fetch and decode a stack's compose file; fetch failures mean absent."""
        try:
            response = self.client.get_stack_file(stack.id)
        except TransportError as e:
            logger.warning(f"    could not fetch compose file for stack {stack.id}: {e}")
            return ContentAbsent(f'fetch failed: {e}')

        content = decode_stack_file(response)
        if isinstance(content, ContentAbsent) and content.ambiguous:
            logger.debug(f"    stack {stack.id}: {content.reason}")
        return content


def git_readme(stack: Stack) -> str:
    """Provenance note for a stack whose compose file lives in git."""
    git = stack.git_config
    return (
        'git-based stack:\n'
        f'  Repo:       {git.url}\n'
        f'  Reference:  {git.reference}\n'
        f'  Compose:    {git.compose_path}\n'
    )

"""
Prompt Registry - Versioned transcription prompt templates.

Prompts are plain text files named {prompt_id}_v{version}.txt. Optional
leading "# key: value" lines carry metadata such as the output schema.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class PromptTemplate:
    """A versioned prompt template."""
    id: str
    version: str
    template: str
    schema_name: str
    metadata: dict

    @property
    def body(self) -> str:
        """Template text without the metadata header."""
        lines = self.template.split("\n")
        while lines and lines[0].startswith("#"):
            lines.pop(0)
        return "\n".join(lines).strip()


@dataclass
class PromptVersion:
    version: str
    path: str


class PromptRegistry:
    """
    Registry for versioned prompt templates; the newest version wins unless
    one is named explicitly.

    Example files: transcribe_csv_v0.txt, transcribe_rows_v0.txt
    """

    def __init__(self, prompts_dir: Optional[Path] = None):
        self.prompts_dir = prompts_dir or Path(__file__).parent.parent / "prompts"
        self._cache: dict[str, PromptTemplate] = {}

    def get_prompt(self, prompt_id: str, version: Optional[str] = None) -> PromptTemplate:
        """
        Get a prompt template by ID and version.

        Args:
            prompt_id: The prompt identifier (e.g., 'transcribe_csv')
            version: Specific version (e.g., 'v0'). If None, uses the latest.

        Raises:
            FileNotFoundError: If no matching prompt file exists
        """
        if version is None:
            versions = self.list_prompt_versions(prompt_id)
            if not versions:
                raise FileNotFoundError(f"No versions found for prompt: {prompt_id}")
            version = versions[-1].version

        cache_key = f"{prompt_id}_{version}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        file_path = self.prompts_dir / f"{prompt_id}_{version}.txt"
        if not file_path.exists():
            raise FileNotFoundError(f"Prompt not found: {file_path}")

        template = file_path.read_text(encoding="utf-8")
        metadata = self._parse_metadata(template)

        prompt = PromptTemplate(
            id=prompt_id,
            version=version,
            template=template,
            schema_name=metadata.get("schema", f"{prompt_id}_output"),
            metadata=metadata,
        )
        self._cache[cache_key] = prompt
        return prompt

    def list_prompt_versions(self, prompt_id: str) -> list[PromptVersion]:
        """List all available versions of a prompt, oldest first."""
        versions = []
        pattern = re.compile(rf"^{re.escape(prompt_id)}_v(\d+)\.txt$")

        for path in self.prompts_dir.glob(f"{prompt_id}_v*.txt"):
            match = pattern.match(path.name)
            if match:
                versions.append(PromptVersion(version=f"v{match.group(1)}", path=str(path)))

        versions.sort(key=lambda v: int(v.version[1:]))
        return versions

    def _parse_metadata(self, template: str) -> dict:
        """Parse metadata from template header comments."""
        metadata = {}
        for line in template.split("\n"):
            if not line.startswith("#"):
                break
            match = re.match(r"^#\s*(\w+):\s*(.+)$", line)
            if match:
                metadata[match.group(1).lower()] = match.group(2).strip()
        return metadata

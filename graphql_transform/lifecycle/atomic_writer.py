"""
Atomic file writer for persisted project state.

Ensures that an interrupted write never leaves a half-written state or
artifact file behind.
"""

from __future__ import annotations

import json
import tempfile
from collections.abc import Callable
from pathlib import Path

from ..errors import StateFileError


class AtomicWriter:
    """Handles atomic file writes with validation.

    Uses a two-phase commit approach:
    1. Write to a temporary file in the same directory
    2. Validate the content
    3. Atomically replace the target file
    """

    def __init__(self, validate_json: Callable[[str], None] | None = None):
        """Initialize the atomic writer.

        Args:
            validate_json: Optional validation function for JSON documents
        """
        self._validate_json = validate_json or self._default_validate_json

    def write(self, path: Path, content: str, validate: bool = True) -> None:
        """Write content to file atomically.

        Args:
            path: Target file path
            content: Content to write
            validate: Whether to validate before finalizing

        Raises:
            StateFileError: If validation fails
            OSError: If file operations fail
        """
        path.parent.mkdir(parents=True, exist_ok=True)

        # Same directory ensures atomic rename on the same filesystem
        temp_fd, temp_path_str = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            text=True,
        )

        temp_path = Path(temp_path_str)

        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)

            if validate and path.suffix == ".json":
                self._validate_json(content)

            temp_path.replace(path)

        except Exception:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass  # Best effort cleanup
            raise

    def _default_validate_json(self, content: str) -> None:
        """Default JSON validation: the document must parse to an object.

        Raises:
            StateFileError: If validation fails
        """
        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            raise StateFileError(f"Refusing to write invalid JSON: {e}") from e

        if not isinstance(document, dict):
            raise StateFileError("Refusing to write JSON that is not an object")

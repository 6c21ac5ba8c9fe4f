"""
I/O utilities: YAML loading and atomic text writes.
A trajectory file is either fully written or not touched at all.
"""
import os
import yaml
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Union
import logging

logger = logging.getLogger(__name__)


def atomic_write_lines(filepath: Union[str, Path], lines: Iterable[str]) -> Path:
    """
    Write text lines atomically using temporary file + os.replace().

    Args:
        filepath: Target file path
        lines: Lines without trailing newline

    Returns:
        Path that was written

    Raises:
        IOError: If write operation fails
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in same directory (same filesystem for os.replace)
    fd, temp_path = tempfile.mkstemp(
        dir=filepath.parent,
        prefix=f".{filepath.stem}_",
        suffix=".tmp"
    )

    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            for line in lines:
                f.write(line)
                f.write("\n")

        os.replace(temp_path, filepath)
        logger.debug(f"Atomically wrote {filepath}")
        return filepath

    except Exception as e:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        logger.error(f"Failed to write {filepath}: {e}")
        raise IOError(f"Atomic write failed: {e}") from e


def load_yaml(filepath: Union[str, Path]) -> Dict[str, Any]:
    """
    Load YAML configuration file.

    Args:
        filepath: Path to YAML file

    Returns:
        Parsed configuration dictionary

    Raises:
        FileNotFoundError: If file does not exist
        yaml.YAMLError: If file is malformed
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        logger.debug(f"Loaded {filepath}")
        return data if data is not None else {}

    except yaml.YAMLError as e:
        logger.error(f"Failed to parse {filepath}: {e}")
        raise

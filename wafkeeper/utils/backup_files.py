"""
Reading and writing policy backup files.

One JSON document per file, named
<subscription>+<resourceGroup>+<name>+<YYYYMMDDhhmmss>.json (UTC).
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pydantic import ValidationError

from wafkeeper.core.exceptions import BackupFileError
from wafkeeper.schemas.backup import WrappedPolicy

logger = logging.getLogger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def backup_file_name(wrapped: WrappedPolicy, taken_at: Optional[datetime] = None) -> str:
    timestamp = (taken_at or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return (
        f"{wrapped.subscription_id}+{wrapped.resource_group}+{wrapped.name}"
        f"+{timestamp.strftime(BACKUP_TIMESTAMP_FORMAT)}.json"
    )


def write_backup(wrapped: WrappedPolicy, directory: Union[str, Path], taken_at: Optional[datetime] = None) -> Path:
    """
    Write a wrapped policy to a new file in directory.

    Returns:
        Path of the written file
    """
    target_dir = Path(directory).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    file_path = target_dir / backup_file_name(wrapped, taken_at)
    file_path.write_text(json.dumps(wrapped.to_document(), indent=4), encoding="utf-8")
    logger.info(f"backup written to: {file_path}")
    return file_path


def load_wrapped_policy_from_file(path: Union[str, Path]) -> WrappedPolicy:
    """
    Load a single backup file.

    Raises:
        OSError: if the file cannot be read
        BackupFileError: if the content is not a wrapped policy
    """
    file_path = Path(path)
    content = file_path.read_text(encoding="utf-8")
    try:
        return WrappedPolicy.model_validate_json(content)
    except ValidationError as e:
        raise BackupFileError(file_path, str(e)) from e


def _is_backup_file(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() == ".json"


def load_backups_from_paths(paths: Iterable[Union[str, Path]]) -> List[WrappedPolicy]:
    """
    Load backups from files and directories (non-recursive).

    Files without a .json extension are ignored.

    Raises:
        FileNotFoundError: if a path does not exist
    """
    backups = []
    for raw_path in paths:
        path = Path(raw_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"no such file or directory: {path}")

        if path.is_dir():
            candidates = sorted(p for p in path.iterdir() if _is_backup_file(p))
        else:
            candidates = [path] if _is_backup_file(path) else []

        for candidate in candidates:
            backups.append(load_wrapped_policy_from_file(candidate))

    logger.debug(f"loaded {len(backups)} policy backups")
    return backups

"""JSON document persistence shared by the metadata, purge, and slideshow stores."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Callable, TypeVar

from pydantic import BaseModel, ValidationError

from slidelib.errors import PersistenceError

ModelT = TypeVar("ModelT", bound=BaseModel)


def read_document(path: Path, model: type[ModelT], default: Callable[[], ModelT]) -> ModelT:
    """Load a persisted document, returning ``default()`` when it does not exist.

    Args:
        path: Location of the JSON document.
        model: Pydantic model used to validate the payload.
        default: Factory producing the document used when the file is absent.

    Returns:
        ModelT: Validated document.

    Raises:
        PersistenceError: If the file cannot be read or does not validate.
    """
    if not path.exists():
        return default()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"Could not read {path}: {exc}") from exc
    if not raw.strip():
        return default()
    try:
        return model.model_validate(json.loads(raw))
    except json.JSONDecodeError as exc:
        raise PersistenceError(f"Invalid JSON in {path}: {exc}") from exc
    except ValidationError as exc:
        raise PersistenceError(f"Unexpected document structure in {path}: {exc}") from exc


def write_document(path: Path, document: BaseModel) -> None:
    """Atomically replace ``path`` with the serialized document.

    The payload is written to a sibling temporary file and moved over the
    target, so readers observe either the old or the new document.

    Raises:
        PersistenceError: If the document cannot be written.
    """
    payload = document.model_dump_json(indent=2)
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise PersistenceError(f"Could not write {path}: {exc}") from exc
    finally:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)


__all__ = ["read_document", "write_document"]

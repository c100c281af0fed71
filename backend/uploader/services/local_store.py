from __future__ import annotations

import logging
import os

from uploader.schemas.upload import StoredArtifact


log = logging.getLogger(__name__)


def ensure_dir(path: str) -> None:
    # exist_ok makes concurrent creation of a shared namespace a no-op.
    os.makedirs(path, exist_ok=True)


def persist_local(data: bytes | None, *, filename: str, root: str, sub_path: str) -> StoredArtifact | None:
    """Best-effort write of one variant to `sub_path/filename`.

    Access is checked on `root`, not on `sub_path`, since the namespace directory
    usually doesn't exist yet. Nothing is raised to the caller.
    """
    if data is None:
        return None

    if not os.access(root, os.R_OK | os.W_OK):
        log.warning("local upload skipped for %s: no read/write access to %s", filename, root)
        return None

    target = os.path.abspath(os.path.join(sub_path, filename))
    try:
        ensure_dir(sub_path)
        with open(target, "wb") as f:
            f.write(data)
    except OSError as e:
        log.warning("local upload failed for %s: %s", target, e)
        return None

    return StoredArtifact(filename=filename, destination="local", location=target)

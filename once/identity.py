from __future__ import annotations

import hashlib
import logging
import os
import shutil
from collections.abc import Callable, Sequence

from once.errors import CommandNotFound, UsageError
from once.types import Identity, Invocation

logger = logging.getLogger(__name__)

HashProvider = Callable[[bytes], str]


def sha256_hex(data: bytes) -> str:
    """Hash bytes into a stable hex identity string."""
    return hashlib.sha256(data).hexdigest()


def _has_separator(token: str) -> bool:
    return os.sep in token or (os.altsep is not None and os.altsep in token)


def resolve_executable(token: str, cwd: str, search_path: str | None = None) -> str:
    """Resolve the command token to an absolute path.

    Tokens with a path separator are joined onto ``cwd`` exactly as typed;
    ``..`` is left for the kernel to resolve so it follows symlinks the way
    the shell would. Bare names go through the search path.
    """
    if _has_separator(token):
        return os.path.join(cwd, token)

    found = shutil.which(token, path=search_path)
    if found is None:
        raise CommandNotFound(f"Command not found: {token}")
    return os.path.join(cwd, found)


def resolve_identity(
    argv: Sequence[str],
    extra_key: str = "",
    *,
    cwd: str | None = None,
    search_path: str | None = None,
    hasher: HashProvider = sha256_hex,
) -> Invocation:
    """Build the identity of a command invocation and its token."""
    if not argv:
        raise UsageError("Missing command after --")

    working_dir = os.path.abspath(cwd) if cwd is not None else os.getcwd()
    identity = Identity(
        executable_path=resolve_executable(argv[0], working_dir, search_path),
        arguments=tuple(argv[1:]),
        working_dir=working_dir,
        extra_key=extra_key,
    )
    token = hasher(identity.serialize().encode("utf-8"))
    logger.debug("identity %s -> %s", identity.executable_path, token)
    return Invocation(argv=tuple(argv), identity=identity, token=token)

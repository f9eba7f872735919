"""List indexed files by tag."""

from __future__ import annotations

from typing import Sequence

from pathtag.state import File, Transaction

from .errors import UnknownTagError


def list_files(
    tx: Transaction, tag_names: Sequence[str] = (), exclude: Sequence[str] = ()
) -> list[File]:
    """Return indexed files carrying every named tag and none of the excluded tags.

    With no tags named, every indexed file qualifies before exclusion.

    Raises:
        UnknownTagError: If a named or excluded tag does not exist.
    """
    for name in (*tag_names, *exclude):
        if tx.tag_by_name(name) is None:
            raise UnknownTagError(name)
    return tx.files_with_tags(tag_names, exclude)


__all__ = ["list_files"]

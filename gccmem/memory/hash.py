"""Commit hash minting."""

import hashlib
import uuid

HASH_LENGTH = 16


def mint_hash(category: str, branch_name: str, parent_hash: str | None) -> str:
    """
    Mint a fresh commit hash.

    Hashes are not derived from the snapshot: random material is mixed in so
    two commits with identical content stay distinguishable.

    Args:
        category: Category the commit belongs to.
        branch_name: Branch the commit is appended to.
        parent_hash: Hash of the parent commit, if any.

    Returns:
        Hexadecimal SHA256 prefix of HASH_LENGTH characters.
    """
    material = f"{category}:{branch_name}:{parent_hash or 'root'}:{uuid.uuid4()}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:HASH_LENGTH]

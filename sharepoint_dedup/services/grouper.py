import logging
from typing import Dict, Iterable, List, Set, Tuple

from sharepoint_dedup.schemas import DuplicateGroup, FileInfo

logger = logging.getLogger(__name__)

GroupKey = Tuple[str, str, int]


def group_duplicates(files: Iterable[FileInfo]) -> List[DuplicateGroup]:
    """Partition files into duplicate groups.

    Files without a hash are ignored. Files are bucketed by hash algorithm,
    digest and size, so digests from different algorithms never collide and
    every group's members share one size. Buckets with a single file are
    dropped. Members keep their input order; groups are sorted by hash.

    Args:
        files: File descriptors in enumeration order.

    Returns:
        The duplicate groups, each with at least two members.
    """
    buckets: Dict[GroupKey, List[FileInfo]] = {}
    sizes_by_digest: Dict[Tuple[str, str], Set[int]] = {}

    for f in files:
        if not f.hash:
            continue
        buckets.setdefault((f.hash_algorithm, f.hash, f.size), []).append(f)
        sizes_by_digest.setdefault((f.hash_algorithm, f.hash), set()).add(f.size)

    for (algorithm, digest), sizes in sizes_by_digest.items():
        if len(sizes) > 1:
            logger.warning(f"Hash {algorithm}:{digest} reported for files of different sizes {sorted(sizes)}")

    groups = [
        DuplicateGroup(hash=digest, hash_algorithm=algorithm, file_size=size, files=members)
        for (algorithm, digest, size), members in buckets.items()
        if len(members) > 1
    ]
    groups.sort(key=lambda g: (g.hash, g.hash_algorithm, g.file_size))
    return groups

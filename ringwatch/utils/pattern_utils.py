from typing import Iterable, Tuple

from ringwatch.constants import CANDIDATE_ID_FORMAT, RING_ID_FORMAT


def canonical_member_key(account_ids: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted(set(account_ids)))


def generate_ring_id(sequence: int) -> str:
    return RING_ID_FORMAT.format(sequence)


def generate_candidate_id(sequence: int) -> str:
    return CANDIDATE_ID_FORMAT.format(sequence)

"""
Client Name Matcher

Builds the lookup used by the sweep to attach a source record to a client.
Both the canonical client name and every AKA are inserted, case-folded and
trimmed. Lookup is exact only; there is no fuzzy or partial matching.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, Optional

from sweep.exceptions import AliasCollisionError
from sweep.models import Client

logger = logging.getLogger(__name__)


class AliasCollisionPolicy(str, Enum):
    """What happens when two clients normalize to the same name."""
    LAST_WINS = "last_wins"
    FIRST_WINS = "first_wins"
    REJECT = "reject"


def normalize_name(name: Optional[str]) -> str:
    """Case-fold and trim a name for matching."""
    if not name:
        return ""
    return name.strip().casefold()


def build_client_name_map(
    clients: Iterable[Client],
    policy: AliasCollisionPolicy = AliasCollisionPolicy.LAST_WINS
) -> Dict[str, Client]:
    """
    Map every normalized name and AKA to its client.

    Args:
        clients: Roster snapshot, inserted in order
        policy: Collision resolution between different clients

    Returns:
        Fresh dict of normalized name -> Client

    Raises:
        AliasCollisionError: Under the reject policy, on the first collision
    """
    policy = AliasCollisionPolicy(policy)
    name_map: Dict[str, Client] = {}

    for client in clients:
        names = [client.name] + list(client.akas or [])

        for raw_name in names:
            key = normalize_name(raw_name)
            if not key:
                continue

            existing = name_map.get(key)
            if existing is not None and existing.id != client.id:
                logger.warning(
                    f"Name collision on '{key}': client {existing.id} vs {client.id} ({policy.value})"
                )
                if policy == AliasCollisionPolicy.REJECT:
                    raise AliasCollisionError(key, existing.id, client.id)
                if policy == AliasCollisionPolicy.FIRST_WINS:
                    continue

            name_map[key] = client

    return name_map


def match_client(name_map: Dict[str, Client], respondent_name: Optional[str]) -> Optional[Client]:
    """Exact lookup of a respondent name; None on a miss."""
    key = normalize_name(respondent_name)
    if not key:
        return None
    return name_map.get(key)

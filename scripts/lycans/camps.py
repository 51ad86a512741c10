"""Role/camp resolution and win determination.

Every player resolves to exactly one camp label from CAMP_LABELS, at the
start of the game ("initial") and after role changes ("final"). Missing or
unknown roles resolve to Villageois.
"""

from collections import Counter

from lycans.cleaning import name_key
from lycans.constants import (
    ROLE_CAMPS, WOLF_FAMILY, SOLO_CAMPS, INDEPENDENT_WIN_CAMPS,
    VILLAGEOIS, TRAITRE, LOUPS, ELITE_VILLAGER_ROLE, ELITE_POWERS,
)

# Case/whitespace-insensitive view of the role table plus the membership lists
_NORMALIZED_CAMPS = {name_key(role): camp for role, camp in ROLE_CAMPS.items()}
for _camp in WOLF_FAMILY + SOLO_CAMPS:
    _NORMALIZED_CAMPS.setdefault(name_key(_camp), _camp)


def camp_from_role(role):
    """Map a raw role string to its camp, or None if the role is unknown."""
    if not role:
        return None
    if role in ROLE_CAMPS:
        return ROLE_CAMPS[role]
    return _NORMALIZED_CAMPS.get(name_key(role))


_ELITE_POWER_KEYS = {name_key(p): p for p in ELITE_POWERS}


def effective_power(player):
    """Elite power of a player, read from Power or from a legacy role string."""
    for value in (player.get("main_role_initial"), player.get("power")):
        power = _ELITE_POWER_KEYS.get(name_key(value))
        if power:
            return power
    return None


def _initial_camp(player):
    if name_key(player.get("secondary_role")) == name_key(TRAITRE):
        return TRAITRE

    role = player.get("main_role_initial")
    # Elite powers only ever belong to Villageois Élite
    if name_key(role) == name_key(ELITE_VILLAGER_ROLE) or effective_power(player):
        return VILLAGEOIS

    return camp_from_role(role) or VILLAGEOIS


def resolve_camp(player, when="initial"):
    """Resolve a clean player's camp at the start ("initial") or end ("final")."""
    initial = _initial_camp(player)
    if when == "initial":
        return initial

    changes = player.get("role_changes") or []
    for change in reversed(changes):
        role = change.get("new_role")
        if role:
            return camp_from_role(role) or VILLAGEOIS
    return initial


def is_wolf_family(camp):
    return camp in WOLF_FAMILY


def affiliation(camp):
    """Alliance a camp wins under: the whole wolf family shares "Loups"."""
    return LOUPS if is_wolf_family(camp) else camp


def final_camps(game):
    """(player, final camp) for every player of a clean game."""
    return [(p, resolve_camp(p, "final")) for p in game.get("players", [])]


# ─── Win Determination ──────────────────────────────────────────

def winning_camp_of(game):
    """Winning camp label from the victors' final camps. None with no victors."""
    victor_camps = [camp for p, camp in final_camps(game) if p.get("victorious")]
    if not victor_camps:
        return None
    if any(is_wolf_family(c) for c in victor_camps):
        return LOUPS
    solo = [c for c in victor_camps if c != VILLAGEOIS]
    return solo[0] if solo else VILLAGEOIS


def did_camp_win(player_camp, winning_camp, victorious=False):
    """Whether a player of player_camp counts as a winner under winning_camp.

    Independent-win camps (Agent) need the player's own victorious flag: a
    game may hold several of them and only one actually wins.
    """
    if winning_camp is None:
        return False
    if is_wolf_family(player_camp):
        return winning_camp == LOUPS
    if player_camp in INDEPENDENT_WIN_CAMPS:
        return bool(victorious) and player_camp == winning_camp
    return player_camp == winning_camp


def unmapped_roles(games):
    """Count raw role strings that no table entry covers."""
    counts = Counter()
    for game in games:
        for p in game.get("players", []):
            roles = [p.get("main_role_initial")]
            roles += [rc.get("new_role") for rc in p.get("role_changes") or []]
            for role in roles:
                if role and camp_from_role(role) is None:
                    counts[role] += 1
    return dict(counts)

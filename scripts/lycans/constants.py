"""Pipeline constants — paths, storage config, role vocabulary, thresholds."""

import os
from pathlib import Path

# ─── Paths ──────────────────────────────────────────────────────

SCRIPT_DIR = Path(__file__).resolve().parent.parent  # scripts/
PROJECT_DIR = SCRIPT_DIR.parent
DATA_DIR = Path(os.environ.get("LYCANS_DATA_DIR", PROJECT_DIR / "site" / "data"))
RAW_CACHE = DATA_DIR / "games_cache.json"

# Default raw export location when --input is not given
GAME_LOG_FILE = PROJECT_DIR / "data" / "gameLog.json"

# ─── Object Storage ─────────────────────────────────────────────

S3_BUCKET = os.environ.get("LYCANS_S3_BUCKET", "")
S3_KEY = os.environ.get("LYCANS_S3_KEY", "gameLog.json")
S3_REGION = os.environ.get("AWS_DEFAULT_REGION", "eu-west-3")

# ─── Camps ──────────────────────────────────────────────────────

VILLAGEOIS = "Villageois"
LOUP = "Loup"
TRAITRE = "Traître"
LOUVETEAU = "Louveteau"
AMOUREUX = "Amoureux"
AGENT = "Agent"

# Alliance label the whole wolf family wins under
LOUPS = "Loups"

WOLF_FAMILY = (LOUP, TRAITRE, LOUVETEAU)

SOLO_CAMPS = (
    "Idiot du Village",
    "Cannibale",
    AGENT,
    "Espion",
    "Scientifique",
    AMOUREUX,
    "La Bête",
    "Chasseur de primes",
    "Vaudou",
)

CAMP_LABELS = (VILLAGEOIS,) + WOLF_FAMILY + SOLO_CAMPS

# Camps whose members win individually: several may share a game, at most
# one of them is victorious.
INDEPENDENT_WIN_CAMPS = frozenset({AGENT})

# Villageois Élite carries its sub-ability in the Power field; older logs put
# the power itself in MainRoleInitial.
ELITE_VILLAGER_ROLE = "Villageois Élite"
ELITE_POWERS = ("Chasseur", "Alchimiste", "Protecteur", "Disciple")

# Raw role string → camp. Every role the game logs is listed here; anything
# else falls back to Villageois and shows up in unmapped_roles().
ROLE_CAMPS = {
    "Villageois": VILLAGEOIS,
    ELITE_VILLAGER_ROLE: VILLAGEOIS,
    "Chasseur": VILLAGEOIS,
    "Alchimiste": VILLAGEOIS,
    "Protecteur": VILLAGEOIS,
    "Disciple": VILLAGEOIS,
    "Loup": LOUP,
    "Traître": TRAITRE,
    "Louveteau": LOUVETEAU,
    "Amoureux": AMOUREUX,
    "Amoureux Loup": AMOUREUX,
    "Amoureux Villageois": AMOUREUX,
    "Zombie": "Vaudou",
    "Vaudou": "Vaudou",
    "Idiot du Village": "Idiot du Village",
    "Cannibale": "Cannibale",
    "Agent": AGENT,
    "Espion": "Espion",
    "Scientifique": "Scientifique",
    "La Bête": "La Bête",
    "Chasseur de primes": "Chasseur de primes",
}

# ─── Death Types ────────────────────────────────────────────────

SURVIVOR = "SURVIVOR"
UNKNOWN_DEATH = "UNKNOWN"

DEATH_TYPES = (
    "VOTED",
    "STARVATION",
    "STARVATION_AS_BEAST",
    "BY_WOLF",
    "SURVIVALIST_NOT_SAVED",
    "BY_ZOMBIE",
    "BY_BEAST",
    "BULLET",
    "BULLET_HUMAN",
    "BULLET_WOLF",
    "SHERIF_SUCCESS",
    "OTHER_AGENT",
    "AVENGER",
    "SEER",
    "HANTED",
    "ASSASSIN",
    "LOVER_DEATH",
    "BOMB",
    "CRUSHED",
    "FALL",
    "BY_AVATAR_CHAIN",
    "DISCONNECT",
    UNKNOWN_DEATH,
    SURVIVOR,
)

# Deaths that never credit the recorded killer with a kill
NON_KILL_DEATH_TYPES = frozenset({
    SURVIVOR, "VOTED", "DISCONNECT", "STARVATION", "FALL", "BY_AVATAR_CHAIN",
})

# ─── Events ─────────────────────────────────────────────────────

SKIPPED_VOTE_TARGET = "Passé"
TRANSFORM_ACTION = "Transform"
UNTRANSFORM_ACTION = "Untransform"

# ─── Thresholds & Configuration ─────────────────────────────────

# Monthly ranking: share of the month's games a player must have played
MIN_PARTICIPATION_RATIO = 0.4

# Pairings: minimum co-occurrences to be listed
MIN_WOLF_PAIR_GAMES = 2
MIN_LOVER_PAIR_GAMES = 1

# Team compositions: minimum appearances for "most common" / "best" picks
MIN_COMPOSITION_APPEARANCES = 5

# Player comparison: population used to fit the scalers
MIN_COMPARISON_GAMES = 30

# Advanced consistency
CONSISTENCY_MIN_GAMES = 30
CONSISTENCY_FLOOR_SCORE = 25
CONSISTENCY_CAMP_MIN_GAMES = 10
OPTIMAL_VOLATILITY = 0.4
VOLATILITY_PENALTY = 60
CONSISTENCY_WEIGHTS = (0.4, 0.3, 0.3)  # camp, temporal, volatility
CONSISTENCY_BOUNDS = (5, 95)

# Role changes carry no timing code; bucket them by elapsed minutes
PHASE_MINUTES = 5

# Time periods for aggregation: key → days (None = all time)
PERIODS = {"all": None, "6m": 180, "3m": 90, "1m": 30}

# Maps for aggregation: "all" includes every game
MAPS = ["all", "Village", "Château"]

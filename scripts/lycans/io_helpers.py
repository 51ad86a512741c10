"""I/O operations — game log loading, S3 export fetch, cache management, JSON writing."""

import json
import sys

from lycans.constants import DATA_DIR, RAW_CACHE, S3_REGION


def game_entries(data):
    """Raw game entries of a parsed export: {"GameStats": [...]} or a bare list."""
    if isinstance(data, dict):
        data = data.get("GameStats", [])
    if not isinstance(data, list):
        return []
    return data


def load_game_log(path):
    """Load raw game entries from a local export file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    entries = game_entries(data)
    print(f"  Loaded {len(entries)} raw entries from {path}")
    return entries


# ─── AWS / S3 ───────────────────────────────────────────────────

def get_s3_client():
    """Create an S3 client with retry-friendly config."""
    try:
        import boto3
        from botocore.config import Config
    except ImportError:
        print("Error: boto3 is required. Install with: pip install boto3")
        sys.exit(1)

    config = Config(
        retries={"max_attempts": 10, "mode": "adaptive"},
        read_timeout=120,
        connect_timeout=10,
    )
    return boto3.client("s3", region_name=S3_REGION, config=config)


def fetch_game_log(client, bucket, key):
    """Download and parse the game log export. Returns its raw game entries."""
    response = client.get_object(Bucket=bucket, Key=key)
    body = response["Body"].read()
    size_kb = len(body) / 1024
    entries = game_entries(json.loads(body))
    print(f"    s3://{bucket}/{key}: {size_kb:.0f} KB, {len(entries)} entries")
    return entries


def new_entries(entries, cached_game_ids=None):
    """Raw entries whose Id is not already cached."""
    cached_game_ids = cached_game_ids or set()
    result = []
    for item in entries:
        gid = str(item.get("Id", "")).strip() if isinstance(item, dict) else ""
        if gid not in cached_game_ids:
            result.append(item)
    return result


# ─── JSON Writers ────────────────────────────────────────────────

def write_json(filename, data, compact=False, data_dir=None):
    """Write data to a JSON file in the data directory."""
    path = (data_dir or DATA_DIR) / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if compact:
            json.dump(data, f, separators=(",", ":"), ensure_ascii=False, default=str)
        else:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)
    size_kb = path.stat().st_size / 1024
    print(f"  Wrote {path.name} ({size_kb:.0f} KB)")
    return path


# ─── Cache Management ────────────────────────────────────────────

def load_cache(path=None):
    """Load previously cleaned games from cache."""
    path = path or RAW_CACHE
    if not path.exists():
        return [], set()

    try:
        with open(path, "r", encoding="utf-8") as f:
            cached = json.load(f)
        game_ids = {g["game_id"] for g in cached}
        print(f"  Loaded {len(cached)} cached games")
        return cached, game_ids
    except (json.JSONDecodeError, KeyError, TypeError):
        print(f"  Warning: {path.name} is unreadable, starting from an empty cache")
        return [], set()


def save_cache(games, path=None):
    """Save cleaned games to cache for incremental loading."""
    path = path or RAW_CACHE
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(games, f, separators=(",", ":"), ensure_ascii=False)
    print(f"  Cached {len(games)} games to {path.name}")

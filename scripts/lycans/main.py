"""Pipeline orchestration — build_and_write_all and main entry point."""

import json
import sys
from collections import Counter, defaultdict
from datetime import datetime, timezone
from pathlib import Path

from lycans.constants import PERIODS, MAPS, GAME_LOG_FILE, S3_BUCKET, S3_KEY
from lycans.cleaning import clean_game
from lycans.camps import unmapped_roles
from lycans.filtering import (
    filter_games_by_period, filter_games_by_map, filter_games_by_mod,
    sort_games_by_start, month_key,
)
from lycans.aggregation import (
    aggregate_camp_win_stats,
    aggregate_player_stats,
    aggregate_pairing_stats,
    aggregate_team_compositions,
    aggregate_color_stats,
    aggregate_monthly_rankings,
    aggregate_harvest_stats,
    ranking_progression,
)
from lycans.deaths import (
    aggregate_death_stats,
    aggregate_game_deaths,
    aggregate_killer_records,
    aggregate_survival_by_day,
    aggregate_death_locations,
)
from lycans.scoring import score_players, compare_players
from lycans.series import aggregate_series
from lycans.talking import aggregate_talking_stats
from lycans.timeline import build_timeline
from lycans.voting import aggregate_voting_stats
from lycans.wolf_transform import aggregate_wolf_transforms
from lycans import io_helpers
from lycans.io_helpers import (
    load_cache, save_cache, write_json,
    load_game_log, get_s3_client, fetch_game_log, new_entries,
)

# output file → report builder, run for every period × map
NESTED_REPORTS = {
    "camp_stats.json": aggregate_camp_win_stats,
    "player_stats.json": aggregate_player_stats,
    "pairing_stats.json": aggregate_pairing_stats,
    "team_compositions.json": aggregate_team_compositions,
    "color_stats.json": aggregate_color_stats,
    "death_stats.json": aggregate_death_stats,
    "killer_records.json": aggregate_killer_records,
    "survival.json": aggregate_survival_by_day,
    "death_locations.json": aggregate_death_locations,
    "voting_stats.json": aggregate_voting_stats,
    "talking_stats.json": aggregate_talking_stats,
    "harvest_stats.json": aggregate_harvest_stats,
}


def build_and_write_all(games, data_dir=None):
    """Run all aggregations for each time period × map and write JSON files.

    Output nesting: data[period][map] for the per-population reports. Monthly
    rankings, wolf transforms, player scores, series, per-game deaths and
    timelines are written once over all games.
    """
    out = {"metadata.json": {}}
    for filename in NESTED_REPORTS:
        out[filename] = {}

    for period_key, days in PERIODS.items():
        period_games = filter_games_by_period(games, days)
        print(f"  Period '{period_key}': {len(period_games)} games")

        for filename in out:
            out[filename][period_key] = {}

        for map_name in MAPS:
            map_games = filter_games_by_map(period_games, map_name)
            n = len(map_games)
            print(f"    Map '{map_name}': {n} games")

            unique_players = set()
            versions = Counter()
            for g in map_games:
                versions[g.get("version") or "unknown"] += 1
                for p in g["players"]:
                    unique_players.add(p["id"] or p["name"])

            out["metadata.json"][period_key][map_name] = {
                "last_updated": datetime.now(timezone.utc).isoformat(),
                "total_games": n,
                "total_players": len(unique_players),
                "versions": dict(versions),
            }
            for filename, build in NESTED_REPORTS.items():
                out[filename][period_key][map_name] = build(map_games)

    for filename, data in out.items():
        write_json(filename, data, data_dir=data_dir)

    by_month = defaultdict(list)
    for g in games:
        key = month_key(g)
        if key:
            by_month[key].append(g)

    write_json("monthly_rankings.json", aggregate_monthly_rankings(games), data_dir=data_dir)
    write_json("ranking_progression.json",
               {m: ranking_progression(month_games) for m, month_games in sorted(by_month.items())},
               compact=True, data_dir=data_dir)
    write_json("wolf_transforms.json", aggregate_wolf_transforms(games), data_dir=data_dir)
    write_json("player_scores.json", score_players(games), data_dir=data_dir)
    write_json("series.json", aggregate_series(games), data_dir=data_dir)
    write_json("game_deaths.json", aggregate_game_deaths(games), compact=True, data_dir=data_dir)
    write_json("timelines.json", {g["game_id"]: build_timeline(g) for g in games},
               compact=True, data_dir=data_dir)


def _print_skips(skip_log):
    skip_counts = defaultdict(int)
    for reason in skip_log:
        skip_counts[reason] += 1
    for reason, count in sorted(skip_counts.items(), key=lambda x: -x[1]):
        print(f"    {reason}: {count}")


def _load_raw(args):
    """Raw entries from S3 (--s3) or a local export file."""
    if args.s3:
        if not S3_BUCKET:
            print("Error: --s3 needs LYCANS_S3_BUCKET to be set")
            sys.exit(1)
        print("\n[2/5] Fetching game log from S3...")
        return fetch_game_log(get_s3_client(), S3_BUCKET, S3_KEY)

    path = Path(args.input) if args.input else GAME_LOG_FILE
    print("\n[2/5] Loading game log...")
    if not path.exists():
        print(f"Error: {path} not found")
        sys.exit(1)
    return load_game_log(path)


def main(argv=None):
    import argparse
    parser = argparse.ArgumentParser(description="Lycans Stats Pipeline")
    parser.add_argument("--input", help="Local game log export (default: data/gameLog.json)")
    parser.add_argument("--s3", action="store_true",
                        help="Fetch the game log export from S3 instead of a local file")
    parser.add_argument("--skip-fetch", action="store_true",
                        help="Skip loading the game log, re-aggregate from cache only")
    parser.add_argument("--mod", choices=["all", "modded", "vanilla"], default="all",
                        help="Restrict reports to modded or vanilla games")
    parser.add_argument("--compare", nargs=2, metavar=("PLAYER_A", "PLAYER_B"),
                        help="Print a head-to-head comparison instead of writing reports")
    args = parser.parse_args(argv)

    print("Lycans Stats Pipeline")
    print("=" * 50)

    # Step 1: Load cache
    print("\n[1/5] Loading cache...")
    cached_games, cached_ids = load_cache()

    if args.skip_fetch:
        print("\n[2/5] Skipping game log load (--skip-fetch)")
        all_games = cached_games
        print(f"  Using {len(all_games)} cached games")
    else:
        raw_items = new_entries(_load_raw(args), cached_ids)
        print(f"  Found {len(raw_items)} new entries")

        # Step 3: Clean new games
        print("\n[3/5] Cleaning data...")
        new_games = []
        skip_log = []
        for item in raw_items:
            cleaned = clean_game(item, skip_log=skip_log)
            if cleaned:
                new_games.append(cleaned)
        print(f"  Cleaned {len(new_games)} new games, skipped {len(skip_log)}")
        if skip_log:
            _print_skips(skip_log)

        all_games = sort_games_by_start(cached_games + new_games)
        print(f"  Total games: {len(all_games)}")

        # Step 4: Save updated cache
        print("\n[4/5] Saving cache...")
        save_cache(all_games)

    games = filter_games_by_mod(all_games, args.mod)
    if args.mod != "all":
        print(f"  {len(games)} {args.mod} games kept")

    print("\n[5/5] Checking role table...")
    unmapped = unmapped_roles(games)
    if unmapped:
        print(f"  Warning: {len(unmapped)} roles default to Villageois")
        for role, count in sorted(unmapped.items(), key=lambda x: -x[1]):
            print(f"    {role}: {count}")
    else:
        print("  All roles mapped")

    if args.compare:
        a, b = args.compare
        result = compare_players(games, a, b)
        if result is None:
            print(f"\nNo games found for '{a}' or '{b}'")
            sys.exit(1)
        print(json.dumps(result, indent=2, ensure_ascii=False))
        return

    print("\nAggregating and writing data files...")
    build_and_write_all(games)

    print(f"\nDone! {len(games)} games processed → {io_helpers.DATA_DIR}")


if __name__ == "__main__":
    main()

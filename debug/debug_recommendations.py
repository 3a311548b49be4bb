#!/usr/bin/env python3
"""
Debug tool for the recommendation system.

Prints a user's ranked recommendations with the score breakdown, the
reasons attached to each item and the user's category affinities.

Usage:
    python debug/debug_recommendations.py <user_id> [--catalog FILE] [--interactions DIR]

Example:
    python debug/debug_recommendations.py alice --limit 5 --type event
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config_manager import get_app_config, get_paths_config
from recommendation_service import JsonItemSource, RecommendationType
from recommendation_service.factory import create_recommendation_service
from recommendation_service.logging_config import setup_logging, stop_logging
from recommendation_service.recommendations import FeatureExtractor


def print_profile(service, user_id: str) -> None:
    """Print the user's decayed category affinities."""
    features = FeatureExtractor(service.interaction_log, service.catalog.get)
    profile = features.user_profile(user_id)
    print(f"\n=== Profile for {user_id} ===")
    print(f"Interactions: {profile.interaction_count}, total mass: {profile.total_mass:.3f}")
    if not profile.category_mass:
        print("  (no history: cold start)")
    for category, mass in sorted(profile.category_mass.items(), key=lambda kv: -kv[1]):
        print(f"  {category.value:<12} mass={mass:7.3f} affinity={profile.affinity(category):.3f}")
    print(f"Positively engaged items: {len(profile.positive_items)}")


def print_recommendations(result) -> None:
    """Print ranked items with score components and reasons."""
    print(f"\n=== Recommendations ({len(result)} items, cold_start={result.cold_start}) ===")
    if result.is_empty:
        print(f"  {result.reason}")
        return
    for rank, entry in enumerate(result, start=1):
        s = entry.score
        print(
            f"{rank:>2}. [{s.overall:3d}] {entry.item.id} ({entry.item.type.value}, "
            f"{entry.item.primary_category.value}) {entry.item.title}"
        )
        print(
            f"      relevance={s.relevance:.1f} personalization={s.personalization:.1f} "
            f"popularity={s.popularity:.1f} timeliness={s.timeliness:.1f}"
        )
        for reason in entry.reasons:
            print(f"      - {reason.type.value} ({reason.confidence}): {reason.description}")


def main() -> int:
    paths = get_paths_config()
    parser = argparse.ArgumentParser(description="Debug recommendations for a user")
    parser.add_argument("user_id", help="User to recommend for")
    parser.add_argument("--catalog", default=paths.catalog_file, help="Catalog JSON file")
    parser.add_argument("--interactions", default=paths.interaction_dir, help="Interaction log directory")
    parser.add_argument("--type", choices=[t.value for t in RecommendationType], help="Only this item type")
    parser.add_argument("--limit", type=int, help="Maximum number of items")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging(debug=args.debug or get_app_config().debug)
    try:
        catalog_file = Path(args.catalog)
        if not catalog_file.exists():
            print(f"Catalog file not found: {catalog_file}", file=sys.stderr)
            return 1
        service = create_recommendation_service(
            source=JsonItemSource(catalog_file),
            interaction_dir=Path(args.interactions),
        )
        print_profile(service, args.user_id)
        result = service.get_recommendations(
            args.user_id,
            item_type=RecommendationType(args.type) if args.type else None,
            limit=args.limit,
        )
        print_recommendations(result)
        stats = service.get_stats(args.user_id)
        print(f"\nStats: {stats.to_dict()}")
        return 0
    finally:
        stop_logging()


if __name__ == "__main__":
    sys.exit(main())

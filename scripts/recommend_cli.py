"""CLI script for getting group recommendations.

Useful for checking how the scorer ranks the open groups for a given
vendor. Looks the vendor up by email in the configured database and prints
the ranked groups to the console.
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional, Tuple

from pymongo.errors import PyMongoError

from groupbuy.config import get_settings
from groupbuy.recommender.scoring import DEFAULT_TOP_N, GroupRecommender
from groupbuy.store.database import connect

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)


def get_recommendations(
    email: str,
    top_n: int = DEFAULT_TOP_N,
    explain: bool = False,
) -> Tuple[List[Dict], Optional[Dict]]:
    """Get recommendations for a user.

    Args:
        email: Email of the user to get recommendations for
        top_n: Number of recommendations to return
        explain: If True, also return score breakdown

    Returns:
        Tuple of (recommendations list, optional scores dict)
    """
    client, store = connect(get_settings().mongo)
    try:
        user = store.users.find_one({"email": email.lower()})
        if user is None:
            print(f"Error: No user with email {email}", file=sys.stderr)
            sys.exit(1)

        groups = list(store.groups.find({"status": "active"}))
        logger.info(f"Scoring {len(groups)} active groups")

        recommender = GroupRecommender(top_n=top_n)
        if explain:
            return recommender.recommend(user, groups, return_scores=True)
        return recommender.recommend(user, groups), None
    except PyMongoError as e:
        print(f"Error: Database unavailable", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        client.close()


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Get group recommendations for a vendor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/recommend_cli.py vendor1@demo.groupbuy.in
  python scripts/recommend_cli.py vendor1@demo.groupbuy.in --top-n 3
  python scripts/recommend_cli.py vendor1@demo.groupbuy.in --explain
        """
    )

    parser.add_argument(
        "email",
        type=str,
        help="Email of the user to get recommendations for"
    )

    parser.add_argument(
        "--top-n",
        type=int,
        default=DEFAULT_TOP_N,
        help=f"Number of recommendations to return (default: {DEFAULT_TOP_N})"
    )

    parser.add_argument(
        "--explain",
        action="store_true",
        help="Show score breakdown for recommendations"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    recommendations, scores = get_recommendations(
        email=args.email,
        top_n=args.top_n,
        explain=args.explain,
    )

    # Print results
    print(f"\nRecommendations for {args.email}:")
    if not recommendations:
        print("  No groups scored above the threshold")
    for rank, rec in enumerate(recommendations, start=1):
        print(f"  {rank}. {rec['productName']} ({rec['category']}) score={rec['score']:.1f} priority={rec['priority']}")
        for reason in rec["reasons"]:
            print(f"       - {reason}")

        if args.explain and scores:
            breakdown = scores.get(str(rec["group"]), {})
            parts = ", ".join(f"{name}={value:.1f}" for name, value in breakdown.items())
            print(f"       [{parts}]")

    print()


if __name__ == "__main__":
    main()

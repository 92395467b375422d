"""
Command-line interface for the review service.

Provides commands for:
- setup: Check and create required tables
- status: Show current database status
- recalculate: Recompute movie rating summaries from their reviews
- create-admin: Create an administrator account
- seed: Load movies from a JSON file
- serve: Run the API server
"""

import argparse
import getpass
import sys
from pathlib import Path
from typing import Optional

import uvicorn

from .aggregator import RatingAggregator, compute_summary
from .config import Config
from .database import DatabaseManager
from .errors import ConflictError, MovieReviewsError
from .security import hash_password
from .seed import load_movies_file, seed_movies
from .utils import format_number, print_header, print_status_table, progress_bar


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with all commands."""
    parser = argparse.ArgumentParser(
        prog="movie_reviews",
        description="Movie Reviews - manage the catalog database and rating summaries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Setup (run first)
  python -m movie_reviews setup

  # Check status
  python -m movie_reviews status

  # Recompute every movie's rating summary
  python -m movie_reviews recalculate

  # Preview the summary for one movie without writing it
  python -m movie_reviews recalculate --movie-id 3 --dry-run

  # Create an administrator
  python -m movie_reviews create-admin --email admin@example.com --username admin

  # Load sample movies
  python -m movie_reviews seed scripts/sample_movies.json

  # Run the API
  python -m movie_reviews serve
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("setup", help="Check for missing tables and create them")
    subparsers.add_parser("status", help="Show current database status")

    recalculate_parser = subparsers.add_parser(
        "recalculate",
        help="Recompute rating summaries from reviews",
    )
    recalculate_parser.add_argument(
        "--movie-id",
        type=int,
        help="Only recompute this movie",
    )
    recalculate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the computed summaries without saving them",
    )

    admin_parser = subparsers.add_parser("create-admin", help="Create an administrator account")
    admin_parser.add_argument("--email", required=True, help="Admin email address")
    admin_parser.add_argument("--username", required=True, help="Admin display name")
    admin_parser.add_argument(
        "--password",
        help="Admin password (prompted for if omitted)",
    )

    seed_parser = subparsers.add_parser("seed", help="Load movies from a JSON file")
    seed_parser.add_argument("file", type=Path, help="JSON file containing a list of movies")
    seed_parser.add_argument(
        "--threshold",
        type=float,
        default=0.9,
        help="Title similarity (0-1) at which a movie counts as already present (default: 0.9)",
    )

    subparsers.add_parser("serve", help="Run the API server on API_HOST:API_PORT")

    return parser


def cmd_setup(db: DatabaseManager) -> int:
    """Run setup command."""
    print_header("Movie Reviews Setup")

    result = db.check_and_create_tables()

    print("\nTables:")
    for table in DatabaseManager.TABLES:
        if table in result["existing"]:
            print(f"  {table:<20} EXISTS")
        elif table in result["created"]:
            print(f"  {table:<20} CREATED")
        else:
            print(f"  {table:<20} MISSING")

    print(f"\nSetup complete! {len(result['created'])} tables created, "
          f"{len(result['existing'])} already existed.")

    if result["all_present"]:
        print("All required tables are now present.")
        return 0
    print("WARNING: Some tables are still missing!")
    return 1


def cmd_status(db: DatabaseManager) -> int:
    """Run status command."""
    print_header("Movie Reviews Status")

    status = db.get_status()

    print_status_table(
        {
            "Users": format_number(status["user_count"]),
            "Movies": format_number(status["movie_count"]),
            "Reviews": format_number(status["review_count"]),
            "All tables exist": "Yes" if status["all_tables_exist"] else "No",
        },
        title="Database Status",
    )

    if status["missing_tables"]:
        print(f"Missing tables: {', '.join(status['missing_tables'])}")
        print("\nRun 'python -m movie_reviews setup' to create missing tables.")

    return 0


def cmd_recalculate(db: DatabaseManager, aggregator: RatingAggregator, args) -> int:
    """Run recalculate command."""
    print_header("Recalculate Rating Summaries")

    movie_ids = [args.movie_id] if args.movie_id else db.movies.all_ids()
    if not movie_ids:
        print("No movies found.")
        return 0

    changed = 0
    for movie_id in progress_bar(movie_ids, desc="Movies", unit="movies", disable=len(movie_ids) < 2):
        movie = db.movies.find_by_id(movie_id)
        if movie is None:
            print(f"Movie {movie_id} not found.")
            return 1

        if args.dry_run:
            summary = compute_summary(db.reviews.find_all_by_movie(movie_id))
        else:
            summary = aggregator.recompute(movie_id)

        if summary.average_rating != movie.average_rating or summary.recommendation_counts != {
            "up": movie.recommendation_up,
            "down": movie.recommendation_down,
        }:
            changed += 1
            if args.dry_run or len(movie_ids) == 1:
                print(
                    f"  {movie.title}: {movie.average_rating} -> {summary.average_rating}, "
                    f"up {movie.recommendation_up} -> {summary.recommendation_up}, "
                    f"down {movie.recommendation_down} -> {summary.recommendation_down}"
                )

    print_status_table(
        {
            "Movies checked": format_number(len(movie_ids)),
            "Summaries out of date": format_number(changed),
        },
        title="Results",
    )

    if args.dry_run:
        print("Dry run completed. No changes saved.")
    else:
        print("Recalculation completed successfully.")
    return 0


def cmd_create_admin(db: DatabaseManager, args) -> int:
    """Run create-admin command."""
    print_header("Create Admin")

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 6:
        print("Password must be at least 6 characters.")
        return 1

    email = args.email.strip().lower()
    try:
        user = db.users.create(args.username.strip(), email, hash_password(password), is_admin=True)
    except ConflictError:
        print(f"A user with email {email} already exists.")
        return 1

    print(f"Admin created: {user.email} (id={user.id})")
    return 0


def cmd_seed(db: DatabaseManager, args) -> int:
    """Run seed command."""
    print_header("Seed Movies")

    movies = load_movies_file(args.file)
    result = seed_movies(db.movies, movies, threshold=args.threshold)

    for skipped in result["skipped"]:
        print(f"  Skipped '{skipped['title']}' (matches '{skipped['matches']}')")

    print_status_table(
        {
            "Movies in file": format_number(len(movies)),
            "Inserted": format_number(len(result["inserted"])),
            "Skipped": format_number(len(result["skipped"])),
        },
        title="Results",
    )
    return 0


def cmd_serve(config: Config) -> int:
    """Run serve command."""
    print_header("Movie Reviews API")
    print(f"Listening on http://{config.api_host}:{config.api_port} (docs at /api/docs)")
    uvicorn.run("api.main:app", host=config.api_host, port=config.api_port, reload=config.api_debug)
    return 0


def main(args: Optional[list] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 0

    # Load configuration
    try:
        config = Config.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}")
        print("\nMake sure your .env file contains:")
        print("  SQL_HOST, SQL_PORT, SQL_USER, SQL_PASS, SQL_DB")
        print("  JWT_SECRET_KEY=<random secret>")
        return 1

    if parsed_args.command == "serve":
        return cmd_serve(config)

    try:
        db = DatabaseManager(config)
        aggregator = RatingAggregator(db.reviews, db.movies, config.summary_max_retries)
    except Exception as e:
        print(f"Error initializing database: {e}")
        return 1

    # Route to command handler
    try:
        if parsed_args.command == "setup":
            return cmd_setup(db)
        elif parsed_args.command == "status":
            return cmd_status(db)
        elif parsed_args.command == "recalculate":
            return cmd_recalculate(db, aggregator, parsed_args)
        elif parsed_args.command == "create-admin":
            return cmd_create_admin(db, parsed_args)
        elif parsed_args.command == "seed":
            return cmd_seed(db, parsed_args)
        else:
            parser.print_help()
            return 0

    except KeyboardInterrupt:
        print("\n\nOperation cancelled.")
        return 130
    except MovieReviewsError as e:
        print(f"\nError: {e.message}")
        return 1
    except OSError as e:
        print(f"\nError: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

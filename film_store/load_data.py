import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from pydantic import ValidationError

from film_store.config import config_from_env, load_config
from film_store.errors import StorageUnavailable
from film_store.models import FilmRecord
from film_store.repository import FilmStore, PostgresFilmStore, SQLiteFilmStore


def read_films(path: Union[str, Path]) -> List[FilmRecord]:
    """Parse a JSON array of {"title", "type", "release_date"} objects"""
    with open(path, "r", encoding="utf-8") as file:
        items = json.load(file)
    if not isinstance(items, list):
        raise ValueError("Films file must contain a JSON array")

    films = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"Film #{position} is not an object")
        films.append(
            FilmRecord(
                title=item.get("title"),
                type=item.get("type"),
                release_date=item.get("release_date"),
            )
        )
    return films


def load_films(store: FilmStore, films: Sequence[FilmRecord]) -> List[FilmRecord]:
    """Create the film table if needed and upsert all films into it"""
    store.create_schema()
    return store.save_all(films)


def open_store(args: argparse.Namespace) -> FilmStore:
    if args.sqlite:
        return SQLiteFilmStore(args.sqlite)
    config = load_config(args.config) if args.config else config_from_env()
    return PostgresFilmStore.from_settings(config.postgres)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Load films from a JSON file into the film table")
    parser.add_argument("films", help="path to a JSON array of films")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--config", help="JSON config with postgres settings, DB_* env vars are used otherwise")
    target.add_argument("--sqlite", help="load into this SQLite file instead of postgres")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    try:
        films = read_films(args.films)
    except (OSError, ValueError, TypeError) as e:
        logging.error("Can't read films from %s: %s", args.films, e)
        return 1

    try:
        with open_store(args) as store:
            saved = load_films(store, films)
    except StorageUnavailable as e:
        logging.error("Film storage is unavailable: %s", e)
        return 2
    except (OSError, ValidationError) as e:
        logging.error("Invalid postgres settings: %s", e)
        return 1

    logging.info("Loaded %s films from %s", len(saved), args.films)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

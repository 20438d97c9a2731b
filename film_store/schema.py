from film_store.models import FilmRecord, FilmType

SORTABLE_COLUMNS = ("title", "type", "release_date")


def film_table_ddl(table_name: str = FilmRecord.target_table) -> str:
    """CREATE TABLE statement for the film table, valid for Postgres and SQLite"""
    allowed_types = ", ".join(f"'{value}'" for value in FilmType.values())
    return f"""
        CREATE TABLE IF NOT EXISTS {table_name} (
            title TEXT PRIMARY KEY CHECK (title <> ''),
            type TEXT NOT NULL CHECK (type IN ({allowed_types})),
            release_date DATE
        )
    """

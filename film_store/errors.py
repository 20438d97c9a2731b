class FilmStoreError(Exception):
    """Base class for errors raised by the film store"""


class InvalidTitle(FilmStoreError, ValueError):
    """Film title is missing or blank"""


class InvalidFilmType(FilmStoreError, ValueError):
    """Film type is not one of the known FilmType values"""


class InvalidPageRequest(FilmStoreError, ValueError):
    """Page index, page size or sort order can't be served"""


class StorageUnavailable(FilmStoreError):
    """Backing database is unreachable or failed to answer"""

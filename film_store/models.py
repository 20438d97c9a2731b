import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from film_store.errors import InvalidFilmType, InvalidTitle


class FilmType(str, Enum):
    FEATURE = "FEATURE"
    SHORT = "SHORT"
    DOCUMENTARY = "DOCUMENTARY"
    ANIMATION = "ANIMATION"
    TV_MOVIE = "TV_MOVIE"

    @classmethod
    def parse(cls, value: Union["FilmType", str]) -> "FilmType":
        """Convert a stored or user supplied string into a FilmType member"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidFilmType(
                f"Unknown film type {value!r}, expected one of {', '.join(cls.values())}"
            ) from None

    @classmethod
    def values(cls) -> Tuple[str, ...]:
        return tuple(member.value for member in cls)


class FilmDto(BaseModel):
    """Film as handed to layers outside the store"""

    model_config = ConfigDict(frozen=True)

    title: str
    type: FilmType


@dataclass(frozen=True)
class FilmRecord:
    """One row of the `film` table"""

    target_table = "film"

    title: str
    type: FilmType
    release_date: Optional[datetime.date] = None

    def __post_init__(self):
        if not isinstance(self.title, str) or not self.title.strip():
            raise InvalidTitle(f"Film title must be a non-empty string, got {self.title!r}")
        # frozen: normalized values are stored with object.__setattr__
        object.__setattr__(self, "type", FilmType.parse(self.type))
        object.__setattr__(self, "release_date", _parse_date(self.release_date))

    @classmethod
    def from_row(cls, row: Sequence) -> "FilmRecord":
        """Re-hydrate a record from a (title, type, release_date) row"""
        title, film_type, release_date = row[0], row[1], row[2]
        return cls(title=title, type=film_type, release_date=release_date)

    def as_row(self) -> Tuple[str, str, Optional[datetime.date]]:
        return self.title, self.type.value, self.release_date

    def to_dto(self) -> FilmDto:
        return FilmDto(title=self.title, type=self.type)


def _parse_date(value) -> Optional[datetime.date]:
    if value is None or type(value) is datetime.date:
        return value
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, str):
        try:
            return datetime.date.fromisoformat(value)
        except ValueError:
            raise ValueError(f"Release date must be YYYY-MM-DD, got {value!r}") from None
    raise TypeError(f"Release date must be a date, got {type(value).__name__}")

"""
Movie Catalog Backend: Movie Document Mapping
================================================

What:  The BSON shape of a movie document and conversions to and from it.
How:   Plain functions; MongoDB needs no ORM and enforces no schema, so the
       document layout is defined here once and used by the service layer.

Document layout (collection `movies`, no secondary indexes):
    {
        "_id":    ObjectId,   # assigned by the store on insert, never changed
        "name":   str,
        "year":   str,
        "rating": str,
    }

Lifecycle:
    1. Inserted by create (the store fills in _id)
    2. Never updated in place
    3. Removed by delete, addressed by _id
"""

from typing import Any, Mapping, TypedDict

from bson import ObjectId
from bson.errors import InvalidId

from catalog.exceptions import ValidationError

MOVIE_FIELDS = ("name", "year", "rating")


class MovieDocument(TypedDict, total=False):
    _id: ObjectId
    name: str
    year: str
    rating: str


def new_movie_document(name: str, year: str, rating: str) -> MovieDocument:
    """Builds an insertable document. _id is left for the store to assign."""
    return {"name": name, "year": year, "rating": rating}


def parse_movie_id(raw: Any) -> ObjectId:
    """
    Converts a caller-supplied id into an ObjectId.

    Raises:
        ValidationError: raw is not a 24-character hex string (or 12 bytes)
    """
    if isinstance(raw, ObjectId):
        return raw
    if not isinstance(raw, str) or not ObjectId.is_valid(raw):
        raise ValidationError(
            message=f"'{raw}' is not a valid movie id",
            field="id",
        )
    try:
        return ObjectId(raw)
    except InvalidId as e:
        raise ValidationError(message=f"'{raw}' is not a valid movie id", field="id") from e


def document_to_record(doc: Mapping[str, Any]) -> dict:
    """
    Flattens a stored document into wire-ready primitives.

    Documents written by other tools may lack a field or hold a non-string
    value; missing fields become "" and everything else is stringified.
    """
    record = {"_id": str(doc["_id"])}
    for field in MOVIE_FIELDS:
        value = doc.get(field)
        record[field] = "" if value is None else str(value)
    return record

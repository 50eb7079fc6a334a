"""Shared schema helpers: string sanitising and camelCase JSON models."""

import re
import unicodedata
from typing import Optional

from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

ZERO_WIDTH_CHARS = re.compile("[\u200b-\u200d\ufeff]")


def sanitize_string(
    value: Optional[str],
    *,
    max_length: int,
    lowercase: bool = False,
    empty_to_none: bool = False,
) -> Optional[str]:
    """
    Normalise user-supplied text.

    NFC-normalises, strips zero-width characters and surrounding whitespace,
    optionally lower-cases, and rejects values longer than max_length.
    Absurdly long input is rejected before normalisation runs.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Must be a string")
    if len(value) > max_length * 2 + 100:
        raise ValueError(f"Must be at most {max_length} characters long")

    cleaned = ZERO_WIDTH_CHARS.sub("", unicodedata.normalize("NFC", value)).strip()
    if lowercase:
        cleaned = cleaned.lower()
    if len(cleaned) > max_length:
        raise ValueError(f"Must be at most {max_length} characters long")
    if empty_to_none and not cleaned:
        return None
    return cleaned


class CamelRequest(BaseModel):
    """Request body accepting camelCase keys (snake_case also works)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CamelResponse(BaseModel):
    """Response body read from ORM objects and serialised with camelCase keys."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )


class MessageResponse(BaseModel):
    message: str

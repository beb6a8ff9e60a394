"""Schema decoding at the document store boundary.

Documents read back from storage are validated here, once, so the rest of
the code only ever sees typed models.
"""

import logging
from collections.abc import Iterable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .exceptions import DocumentDecodeError
from .models import Category, Household, Transaction

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def encode(model: BaseModel, exclude: set[str] | None = None) -> dict[str, Any]:
    """
    Encode a model as a JSON-safe document body.

    Decimals become strings, datetimes ISO 8601 strings, and unset optional
    fields are dropped so they never show up as explicit nulls.
    """
    return model.model_dump(
        mode="json", exclude={"id", *(exclude or set())}, exclude_none=True
    )


def decode(model_cls: type[ModelT], document: dict[str, Any]) -> ModelT:
    """
    Decode a stored document into ``model_cls``.

    Raises:
        DocumentDecodeError: If the document doesn't match the schema
    """
    try:
        return model_cls.model_validate(document)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise DocumentDecodeError(document.get("id"), errors) from e


def decode_transaction(document: dict[str, Any]) -> Transaction:
    return decode(Transaction, document)


def decode_category(document: dict[str, Any]) -> Category:
    return decode(Category, document)


def decode_household(document: dict[str, Any]) -> Household:
    return decode(Household, document)


def decode_valid(
    model_cls: type[ModelT], documents: Iterable[dict[str, Any]]
) -> list[ModelT]:
    """Decode every well-formed document, logging and skipping the rest."""
    decoded = []
    for document in documents:
        try:
            decoded.append(decode(model_cls, document))
        except DocumentDecodeError as e:
            logger.warning(f"Skipping {model_cls.__name__} document: {e}")
    return decoded

"""Encode records to and from the opaque payload stored in a cell."""

from __future__ import annotations

import logging
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from workflow_metadata.errors import CorruptRecord

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class JsonCodec(Generic[RecordT]):
    """JSON codec for one record type."""

    def __init__(self, model: type[RecordT]) -> None:
        self._model = model

    def encode(self, record: RecordT) -> str:
        return record.model_dump_json()

    def decode(self, payload: str) -> RecordT:
        try:
            return self._model.model_validate_json(payload)
        except ValidationError as e:
            logger.error(
                "Stored payload does not decode",
                extra={"model": self._model.__name__},
            )
            raise CorruptRecord(
                f"Corrupt {self._model.__name__} payload in storage: {e}"
            ) from e

# Editor-facing session: last known good Document, file persistence, admin API hand-off

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Type, Union

from ast_struct import Document
from caddyfile_config import DEFAULTS, EngineConfig
from caddyfile_parser import ParseError, parse_caddyfile
from caddyfile_serializer import serialize_caddyfile
from caddyfile_validator import ValidationResult, validate_caddyfile

logger = logging.getLogger(__name__)


class ConfigRejectedError(Exception):
    """
    The admin API refused a structurally valid configuration.

    `detail` is whatever the server said, untouched. This is never raised
    for problems the engine itself can see; those are ParseError.
    """

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class EditSession:
    """
    One editing buffer.

    `update` can be called on every keystroke: when the new text does not
    parse, `document` keeps the last good parse and `error` says why, so a
    caller never has to blank its view on a transient typo.
    """

    def __init__(self, text: str = "", config: EngineConfig = DEFAULTS):
        self.config = config
        self.text = ""
        self.document = Document()
        self.error: Optional[ParseError] = None
        self.validation = ValidationResult()
        if text:
            self.update(text)

    @property
    def is_clean(self) -> bool:
        """True when `document` reflects the current `text`."""
        return self.error is None

    def update(self, text: str) -> bool:
        self.text = text
        self.validation = validate_caddyfile(text, self.config)

        if not self.validation.valid:
            first = self.validation.errors[0]
            self.error = ParseError(first)
            logger.warning("keeping last good document: %s", first)
            return False

        try:
            document = parse_caddyfile(text, self.config)
        except ParseError as e:
            self.error = e
            logger.warning("keeping last good document: %s", e)
            return False

        self.document = document
        self.error = None
        return True

    def apply(self, document: Document) -> str:
        """Take a structurally edited Document and make it the buffer's text."""
        text = serialize_caddyfile(document, self.config)
        if not self.update(text):
            raise self.error
        return text

    # persistence: the raw text is the only thing ever written

    def load(self, path: Union[str, Path]) -> bool:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
        logger.info("loaded %s (%d bytes)", path, len(content))
        return self.update(content)

    def save(self, path: Union[str, Path]):
        if self.error is not None:
            raise self.error
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.text)
        logger.info("saved %s", path)

    # admin API

    def push(
        self,
        loader: Callable[[str], Any],
        rejected: Tuple[Type[BaseException], ...] = (ConfigRejectedError,),
    ) -> Any:
        """
        Hand the serialized document to `loader` (typically an admin API
        client's load call).

        Exceptions of the `rejected` types mean the server refused the
        configuration; they come back as ConfigRejectedError with the
        loader's message as `detail`. Anything else, such as a connection
        failure or a timeout, propagates unchanged.
        """
        if self.error is not None:
            raise self.error

        text = serialize_caddyfile(self.document, self.config)
        try:
            return loader(text)
        except rejected as e:
            logger.warning("configuration rejected by server: %s", e)
            if isinstance(e, ConfigRejectedError):
                raise
            raise ConfigRejectedError(str(e)) from e

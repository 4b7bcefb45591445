# Structural pre-flight checks on raw Caddyfile text, and consistency checks on parsed Documents

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Dict, List

from ast_struct import Directive, Document
from caddyfile_config import DEFAULTS, EngineConfig

_JS_MARKERS = ("function(", "const ", "let ", "var ")

_ADDRESS_PATTERNS = (
    re.compile(r"^[a-z0-9.*-]+\.[a-z]{2,}(\s|{|,|$)", re.IGNORECASE),
    re.compile(r"^:[0-9]{1,5}(\s|{|$)"),
    re.compile(r"^localhost(:[0-9]+)?(\s|{|$)"),
)


@dataclass
class ValidationResult:
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    confidence: int = 0  # 0-100, how much the text looks like a Caddyfile

    def error(self, message: str):
        self.errors.append(message)
        self.valid = False

    def warn(self, message: str):
        if message not in self.warnings:
            self.warnings.append(message)


def _looks_like_json(text: str) -> bool:
    trimmed = text.strip()
    if not (
        (trimmed.startswith("{") and trimmed.endswith("}"))
        or (trimmed.startswith("[") and trimmed.endswith("]"))
    ):
        return False
    try:
        json.loads(trimmed)
    except ValueError:
        return False
    return True


def validate_caddyfile(content: str, config: EngineConfig = DEFAULTS) -> ValidationResult:
    """
    Cheap gate run before a full parse or a save.

    Hard errors: empty content, unbalanced braces. Braces are counted as
    plain characters, comments and quotes included, so any text with a
    different number of '{' and '}' is rejected.

    Soft findings (warnings): denylisted markers that suggest the file is
    something else entirely, and a low confidence score.

    Never raises.
    """
    result = ValidationResult()

    if content is None or not content.strip():
        result.error("File is empty")
        return result

    directive_pattern = re.compile(
        r"^\s*(" + "|".join(re.escape(d) for d in config.common_directives) + r")\b",
        re.IGNORECASE,
    )

    depth = 0
    opened = 0
    closed = 0
    score = 0

    for lineno, line in enumerate(content.split("\n"), start=1):
        line_open = line.count("{")
        line_close = line.count("}")
        opened += line_open
        closed += line_close

        # walk the line so '} {' style lines are judged in order
        for ch in line:
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth < 0:
                    result.error(f"Line {lineno}: '}}' closes a block that was never opened")
                    depth = 0

        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        if directive_pattern.match(stripped):
            score += 15
        if any(p.match(stripped) for p in _ADDRESS_PATTERNS):
            score += 10
        if stripped in ("{", "}"):
            score += 5

        for marker, message in config.denylist:
            if marker in stripped:
                result.warn(message)
        if any(marker in stripped for marker in _JS_MARKERS):
            result.warn("File may contain JavaScript code")
            score -= 20

    if opened != closed:
        result.error(f"Unbalanced braces: {opened} '{{' but {closed} '}}'")

    if _looks_like_json(content):
        result.warn("File appears to be JSON, not a Caddyfile")

    result.confidence = min(100, max(0, score))
    if result.confidence < config.min_confidence:
        result.warn(
            f"Low confidence ({result.confidence}%). This may not be a valid Caddyfile."
        )

    return result


def _count_tags(directives: List[Directive], tag_directive: str) -> int:
    return sum(1 for d in directives if d.name == tag_directive)


def inspect_document(document: Document, config: EngineConfig = DEFAULTS) -> ValidationResult:
    """
    Inconsistency findings on an already parsed Document. Everything found
    here is a warning: the document is structurally fine, it just probably
    does not mean what its author wanted.
    """
    result = ValidationResult()
    owners: Dict[str, List[str]] = {}

    for block in document.site_blocks:
        label = ", ".join(block.addresses)
        if block.tag:
            owners.setdefault(block.tag, []).append(label)

        # the parser already lifted a leading tag into block.tag
        extra = _count_tags(block.directives, config.tag_directive)
        if extra:
            result.warn(f"{label}: {config.tag_directive} appears more than once in the site block")

        defined = {d.matcher_name for d in block.directives if d.is_matcher}
        for directive in block.directives:
            if directive.name != config.handler_directive:
                continue
            if directive.args and directive.args[0].startswith("@"):
                ref = directive.args[0][1:]
                if ref not in defined:
                    result.warn(f"{label}: handle references undefined matcher @{ref}")
            if directive.block and _count_tags(directive.block, config.tag_directive) > 1:
                result.warn(
                    f"{label}: {config.tag_directive} appears more than once in "
                    f"{' '.join([directive.name, *directive.args])}"
                )

    for tag, labels in owners.items():
        if len(labels) > 1:
            result.warn(f"Tag {tag!r} is used by more than one site block: {'; '.join(labels)}")

    return result

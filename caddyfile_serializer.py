# Caddyfile serializer: Document -> text

from __future__ import annotations

from typing import List

from ast_struct import Directive, Document, SiteBlock
from caddyfile_config import DEFAULTS, EngineConfig
from caddyfile_parser import has_comment, parse_caddyfile, split_words


def raw_is_current(directive: Directive) -> bool:
    """
    True when `directive.raw` still says exactly what name/args say.

    Parsed directives carry their source line; once a caller edits name or
    args the raw text is stale and the line has to be rebuilt. A raw line
    with a comment cannot be reused in front of a ' {' body.
    """
    if not directive.raw:
        return False
    if split_words(directive.raw) != [directive.name, *directive.args]:
        return False
    if directive.has_block and has_comment(directive.raw):
        return False
    return True


def directive_header(directive: Directive) -> str:
    if raw_is_current(directive):
        return directive.raw.strip()
    if directive.args:
        return f"{directive.name} {' '.join(directive.args)}"
    return directive.name


def serialize_directive(directive: Directive, depth: int = 1, config: EngineConfig = DEFAULTS) -> List[str]:
    indent = config.indent * depth
    header = directive_header(directive)

    if not directive.has_block:
        return [f"{indent}{header}"]

    lines = [f"{indent}{header} {{"]
    for child in directive.block:
        lines.extend(serialize_directive(child, depth + 1, config))
    lines.append(f"{indent}}}")
    return lines


def serialize_site_block(site_block: SiteBlock, config: EngineConfig = DEFAULTS) -> List[str]:
    lines = [f"{', '.join(site_block.addresses)} {{"]

    # the tag has to stay the first line of the body
    if site_block.tag:
        lines.append(f"{config.indent}{config.tag_directive} {site_block.tag}")

    for directive in site_block.directives:
        lines.extend(serialize_directive(directive, 1, config))

    lines.append("}")
    return lines


def serialize_caddyfile(document: Document, config: EngineConfig = DEFAULTS) -> str:
    """
    Walk the Document back into Caddyfile text.

    Global options come first, then every site block, with one blank line
    between blocks. Unedited directives are written from their raw source
    line, so spacing, quoting and inline comments survive.
    """
    chunks: List[List[str]] = []

    if document.global_options:
        lines = ["{"]
        for directive in document.global_options:
            lines.extend(serialize_directive(directive, 1, config))
        lines.append("}")
        chunks.append(lines)

    for site_block in document.site_blocks:
        chunks.append(serialize_site_block(site_block, config))

    if not chunks:
        return ""
    return "\n\n".join("\n".join(lines) for lines in chunks) + "\n"


def format_caddyfile(text: str, config: EngineConfig = DEFAULTS) -> str:
    """Normalize text by a parse/serialize cycle. Raises ParseError on bad input."""
    return serialize_caddyfile(parse_caddyfile(text, config), config)

# JSON conversion, display strings and statistics for Caddyfile documents

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ast_struct import Container, Directive, Document, Service, SiteBlock
from caddyfile_config import DEFAULTS, EngineConfig
from caddyfile_container import is_container, to_container


def _directive_to_dict(d: Directive) -> dict:
    return {
        "__type__": "Directive",
        "id": d.id,
        "name": d.name,
        "args": list(d.args),
        "block": None if d.block is None else [_directive_to_dict(c) for c in d.block],
        "raw": d.raw,
    }


def _directive_from_dict(d: dict) -> Directive:
    block = d.get("block")
    kwargs = {}
    if d.get("id"):
        kwargs["id"] = d["id"]
    return Directive(
        name=d["name"],
        args=list(d.get("args", [])),
        block=None if block is None else [_directive_from_dict(c) for c in block],
        raw=d.get("raw"),
        **kwargs,
    )


def _site_block_to_dict(b: SiteBlock) -> dict:
    return {
        "__type__": "SiteBlock",
        "id": b.id,
        "addresses": list(b.addresses),
        "tag": b.tag,
        "directives": [_directive_to_dict(d) for d in b.directives],
    }


def _site_block_from_dict(d: dict) -> SiteBlock:
    kwargs = {}
    if d.get("id"):
        kwargs["id"] = d["id"]
    return SiteBlock(
        addresses=list(d.get("addresses", [])),
        directives=[_directive_from_dict(x) for x in d.get("directives", [])],
        tag=d.get("tag"),
        **kwargs,
    )


def _service_to_dict(s: Service) -> dict:
    return {
        "__type__": "Service",
        "id": s.id,
        "matcher_name": s.matcher_name,
        "hostname": s.hostname,
        "tag": s.tag,
        "matchers": [_directive_to_dict(d) for d in s.matchers],
        "directives": [_directive_to_dict(d) for d in s.directives],
    }


def document_to_json_dict(document: Document) -> dict:
    """
    Convert a Document into a JSON-serializable dict with type tags.
    """
    return {
        "__type__": "Document",
        "global_options": [_directive_to_dict(d) for d in document.global_options],
        "site_blocks": [_site_block_to_dict(b) for b in document.site_blocks],
    }


def document_from_json_dict(data: dict) -> Document:
    """
    Convert a dict previously produced by document_to_json_dict back into a Document.
    """
    if not isinstance(data, dict):
        raise ValueError("document_from_json_dict expects a dict")
    if data.get("__type__") not in ("Document", None):
        raise ValueError(f"expected a Document, got {data.get('__type__')!r}")

    return Document(
        global_options=[_directive_from_dict(d) for d in data.get("global_options", [])],
        site_blocks=[_site_block_from_dict(b) for b in data.get("site_blocks", [])],
    )


def container_to_json_dict(container: Container) -> dict:
    """Derived view only; containers are rebuilt from site blocks, never loaded."""
    return {
        "__type__": "Container",
        "id": container.id,
        "wildcard_address": container.wildcard_address,
        "extra_addresses": list(container.extra_addresses),
        "tag": container.tag,
        "shared_config": [_directive_to_dict(d) for d in container.shared_config],
        "services": [_service_to_dict(s) for s in container.services],
        "matchers": [_directive_to_dict(d) for d in container.matchers],
        "routes": [_directive_to_dict(d) for d in container.routes],
        "fallback": None if container.fallback is None else _directive_to_dict(container.fallback),
        "warnings": list(container.warnings),
    }


# -----------------------------
# Display strings

def format_directive_for_display(directive: Directive) -> str:
    """
    Human-readable one-liner. Blocks are summarised by item count, simple
    directives prefer their raw source line.
    """
    args = f" {' '.join(directive.args)}" if directive.args else ""
    if directive.block:
        count = len(directive.block)
        return f"{directive.name}{args} {{ ... {count} item{'' if count == 1 else 's'} }}"

    if directive.raw and not directive.raw.rstrip().endswith("{"):
        return directive.raw.strip()

    return f"{directive.name}{args}"


def directive_summary(directive: Directive) -> str:
    """Name plus first argument, for cards and lists."""
    first = f" {directive.args[0]}" if directive.args else ""
    return f"{directive.name}{first}"


# -----------------------------
# SIMPLE JSON conversion: no __type__, no ids, directives flattened to their
# display lines. Good for humans, cannot be converted back.

def _directive_to_simple(d: Directive) -> Any:
    line = " ".join([d.name, *d.args])
    if d.block is None:
        return line
    return {line: [_directive_to_simple(c) for c in d.block]}


def _site_block_to_simple(b: SiteBlock, config: EngineConfig) -> dict:
    out: Dict[str, Any] = {"addresses": list(b.addresses)}
    if b.tag:
        out["tag"] = b.tag
    if is_container(b, config):
        container = to_container(b, config)
        out["shared"] = [_directive_to_simple(d) for d in container.shared_config]
        out["services"] = {
            s.hostname or f"@{s.matcher_name}": [_directive_to_simple(d) for d in s.directives]
            for s in container.services
        }
        if container.warnings:
            out["warnings"] = list(container.warnings)
    else:
        out["directives"] = [_directive_to_simple(d) for d in b.directives]
    return out


def document_to_simple_json_dict(document: Document, config: EngineConfig = DEFAULTS) -> dict:
    out: Dict[str, Any] = {}
    if document.global_options:
        out["global"] = [_directive_to_simple(d) for d in document.global_options]
    out["sites"] = [_site_block_to_simple(b, config) for b in document.site_blocks]
    return out


# -----------------------------
# Statistics

def count_directives(directives: Optional[List[Directive]]) -> int:
    if not directives:
        return 0
    return sum(1 + count_directives(d.block) for d in directives)


def document_stats(document: Document, config: EngineConfig = DEFAULTS) -> dict:
    containers = [b for b in document.site_blocks if is_container(b, config)]
    return {
        "site_blocks": len(document.site_blocks),
        "directives": count_directives(document.global_options)
        + sum(count_directives(b.directives) for b in document.site_blocks),
        "containers": len(containers),
        "services": sum(len(to_container(b, config).services) for b in containers),
    }

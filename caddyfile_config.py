# caddyfile_config.py
import os
from dataclasses import dataclass, field, replace
from typing import Tuple


@dataclass(frozen=True)
class EngineConfig:
    # Reserved names
    tag_directive: str = "@id"
    handler_directive: str = "handle"
    deny_directive: str = "abort"
    host_property: str = "host"
    wildcard_marker: str = "*"
    # Serializer
    indent: str = "\t"
    # Validator
    min_confidence: int = 30
    denylist: Tuple[Tuple[str, str], ...] = (
        ("<!DOCTYPE", "File appears to be HTML, not a Caddyfile"),
        ("<html", "File appears to be HTML, not a Caddyfile"),
        ("<?php", "File appears to contain PHP code"),
        ("<?=", "File appears to contain PHP code"),
    )
    # Persistence / CLI
    caddyfile_path: str = "./config/Caddyfile"
    log_level: str = "WARNING"
    common_directives: Tuple[str, ...] = field(default=(
        "root", "file_server", "reverse_proxy", "handle", "route", "encode",
        "log", "tls", "respond", "redir", "rewrite", "header", "basicauth",
        "request_header", "uri", "try_files", "php_fastcgi", "templates",
        "import", "vars", "bind", "acme_server",
    ))


def load_config() -> EngineConfig:
    """Defaults overlaid with CADDYFILE_PATH / CADDYFILE_LOG_LEVEL from the environment."""
    overrides = {}
    if os.environ.get("CADDYFILE_PATH"):
        overrides["caddyfile_path"] = os.environ["CADDYFILE_PATH"]
    if os.environ.get("CADDYFILE_LOG_LEVEL"):
        overrides["log_level"] = os.environ["CADDYFILE_LOG_LEVEL"].upper()
    return replace(DEFAULTS, **overrides)


# Global defaults used across modules
DEFAULTS = EngineConfig()

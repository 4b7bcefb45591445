# Container/Service view over wildcard site blocks
#
#   *.svc.example.com {             container
#     tls internal                  shared config, inherited by every service
#     encode gzip
#
#     @api host api.svc.example.com
#     handle @api {                 service "api"
#       reverse_proxy localhost:3000
#     }
#
#     handle {                      fallback: anything not claimed is denied
#       abort
#     }
#   }

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from ast_struct import Container, Directive, Service, SiteBlock
from caddyfile_config import DEFAULTS, EngineConfig
from caddyfile_parser import split_words

logger = logging.getLogger(__name__)


def _wildcard_address(site_block: SiteBlock, config: EngineConfig) -> Optional[str]:
    for address in site_block.addresses:
        if config.wildcard_marker in address:
            return address
    return None


def is_container(site_block: SiteBlock, config: EngineConfig = DEFAULTS) -> bool:
    """
    A wildcard address plus at least one top-level handle, with or without
    a matcher. A brand-new container with only its fallback handle counts.
    """
    if _wildcard_address(site_block, config) is None:
        return False
    return any(d.name == config.handler_directive for d in site_block.directives)


def _host_matcher(directive: Directive, config: EngineConfig) -> Optional[Tuple[str, str]]:
    """(matcher name, hostname) for `@name host hostname`, else None."""
    if not directive.is_matcher:
        return None
    if len(directive.args) >= 2 and directive.args[0] == config.host_property and directive.args[1]:
        return directive.matcher_name, directive.args[1]
    return None


def _split_tag(directives: List[Directive], config: EngineConfig) -> Tuple[Optional[str], List[Directive]]:
    if directives and directives[0].name == config.tag_directive and directives[0].args:
        return directives[0].args[0], list(directives[1:])
    return None, list(directives)


def _is_fallback(directive: Directive, config: EngineConfig) -> bool:
    return directive.name == config.handler_directive and not directive.args


def to_container(site_block: SiteBlock, config: EngineConfig = DEFAULTS) -> Container:
    """
    Split a wildcard site block into shared config and named services.

    Pass 1 maps host matchers to their hostnames, groups the other matcher
    definitions by name, and collects everything that is neither a matcher
    nor a handle as shared config. Pass 2 turns each `handle @name { ... }`
    into a Service that owns every definition of `@name`. A handle naming a
    matcher with no host definition still becomes a Service, with an empty
    hostname and a warning.
    """
    wildcard = _wildcard_address(site_block, config)
    if wildcard is None:
        raise ValueError(
            f"site block {', '.join(site_block.addresses)!r} has no wildcard address"
        )

    shared_config: List[Directive] = []
    hosts: Dict[str, str] = {}
    definitions: Dict[str, List[Directive]] = {}
    warnings: List[str] = []

    # pass 1
    for directive in site_block.directives:
        if directive.name == config.handler_directive:
            continue
        if directive.is_matcher:
            found = _host_matcher(directive, config)
            if found:
                hosts[found[0]] = found[1]
            else:
                definitions.setdefault(directive.matcher_name, []).append(directive)
            continue
        shared_config.append(directive)

    # pass 2
    services: List[Service] = []
    routes: List[Directive] = []
    fallback: Optional[Directive] = None
    claimed = set()

    for directive in site_block.directives:
        if directive.name != config.handler_directive:
            continue

        if not directive.args:
            # only the first matcher-less handle can ever run
            if fallback is not None:
                warnings.append("More than one fallback handle; extra ones are dropped")
            else:
                fallback = directive
            continue

        if len(directive.args) == 1 and directive.args[0].startswith("@"):
            matcher_name = directive.args[0][1:]
            hostname = hosts.get(matcher_name, "")
            if matcher_name not in hosts:
                warnings.append(f"handle @{matcher_name} references an undefined host matcher")
            tag, body = _split_tag(directive.block or [], config)
            if any(d.name == config.tag_directive for d in body):
                warnings.append(f"{config.tag_directive} appears more than once in handle @{matcher_name}")
            # a second handle for the same name must not define the matcher again
            matchers = [] if matcher_name in claimed else list(definitions.get(matcher_name, []))
            claimed.add(matcher_name)
            services.append(
                Service(
                    matcher_name=matcher_name,
                    hostname=hostname,
                    directives=body,
                    tag=tag,
                    id=directive.id,
                    matchers=matchers,
                )
            )
            continue

        # path routes and other handle forms are kept as they are
        routes.append(directive)

    # matchers no service owns are preserved, in source order
    matchers: List[Directive] = []
    for directive in site_block.directives:
        if not directive.is_matcher or directive.matcher_name in claimed:
            continue
        found = _host_matcher(directive, config)
        if found is not None:
            warnings.append(f"Host matcher @{found[0]} is not used by any handle")
        matchers.append(directive)

    if warnings:
        logger.debug("container %s: %s", wildcard, "; ".join(warnings))

    return Container(
        wildcard_address=wildcard,
        shared_config=shared_config,
        services=services,
        id=site_block.id,
        extra_addresses=[a for a in site_block.addresses if a != wildcard],
        tag=site_block.tag,
        matchers=matchers,
        routes=routes,
        fallback=fallback,
        warnings=warnings,
    )


def _line(name: str, args: List[str]) -> str:
    return " ".join([name, *args])


def _deny_fallback(config: EngineConfig) -> Directive:
    deny = split_words(config.deny_directive)
    return Directive(
        name=config.handler_directive,
        args=[],
        block=[Directive(name=deny[0], args=deny[1:], raw=config.deny_directive)],
        raw=config.handler_directive,
    )


def from_container(container: Container, config: EngineConfig = DEFAULTS) -> SiteBlock:
    """
    Rebuild an equivalent site block.

    Shared config comes first, verbatim. Each service is written as a fresh
    `@name host hostname` line (left out when the hostname is empty) and any
    other definitions of `@name`, immediately followed by its handle block.
    The container is deny-by-default: with at least one service there is
    always exactly one zero-argument handle, and it is the last directive.
    """
    directives: List[Directive] = list(container.shared_config)
    directives.extend(container.matchers)

    defined = set()
    for service in container.services:
        if service.matcher_name not in defined:
            defined.add(service.matcher_name)
            if service.hostname:
                matcher_args = [config.host_property, service.hostname]
                directives.append(
                    Directive(
                        name=f"@{service.matcher_name}",
                        args=matcher_args,
                        raw=_line(f"@{service.matcher_name}", matcher_args),
                    )
                )
            directives.extend(service.matchers)

        body: List[Directive] = []
        if service.tag:
            body.append(
                Directive(
                    name=config.tag_directive,
                    args=[service.tag],
                    raw=_line(config.tag_directive, [service.tag]),
                )
            )
        body.extend(service.directives)

        handle_args = [f"@{service.matcher_name}"]
        directives.append(
            Directive(
                name=config.handler_directive,
                args=handle_args,
                block=body,
                raw=_line(config.handler_directive, handle_args),
                id=service.id,
            )
        )

    directives.extend(container.routes)
    if container.fallback is not None:
        directives.append(container.fallback)

    # a zero-argument handle may also arrive through routes or shared config
    fallbacks = [d for d in directives if _is_fallback(d, config)]
    if fallbacks:
        keep = container.fallback if container.fallback is not None else fallbacks[0]
        if len(fallbacks) > 1:
            logger.debug("container %s: dropping %d extra fallback handle(s)", container.wildcard_address, len(fallbacks) - 1)
        directives = [d for d in directives if not _is_fallback(d, config)]
        directives.append(keep)
    elif container.services:
        directives.append(_deny_fallback(config))

    return SiteBlock(
        addresses=[container.wildcard_address, *container.extra_addresses],
        directives=directives,
        tag=container.tag,
        id=container.id,
    )


# -----------------------------
# Editing helpers. Each returns a new object and leaves its input alone.

def base_domain(container: Container, config: EngineConfig = DEFAULTS) -> str:
    """`*.svc.example.com` -> `svc.example.com`"""
    address = container.wildcard_address
    prefix = config.wildcard_marker + "."
    if address.startswith(prefix):
        return address[len(prefix):]
    return address.replace(config.wildcard_marker, "").lstrip(".")


def new_container(
    wildcard_address: str,
    shared_config: Optional[List[str]] = None,
    config: EngineConfig = DEFAULTS,
) -> SiteBlock:
    """
    A fresh container site block: the given shared config lines followed by
    a deny-all fallback handle.
    """
    if config.wildcard_marker not in wildcard_address:
        raise ValueError(f"{wildcard_address!r} is not a wildcard address")

    directives: List[Directive] = []
    for line in shared_config or []:
        words = split_words(line)
        if not words:
            continue
        directives.append(Directive(name=words[0], args=words[1:], raw=line.strip()))
    directives.append(_deny_fallback(config))

    return SiteBlock(addresses=[wildcard_address], directives=directives)


def find_service(container: Container, matcher_name: str) -> Optional[Service]:
    for service in container.services:
        if service.matcher_name == matcher_name:
            return service
    return None


def add_service(
    container: Container,
    subdomain: str,
    matcher_name: str,
    backend: Optional[str] = None,
    config: EngineConfig = DEFAULTS,
) -> Container:
    """Add `subdomain.<base domain>` as a service, optionally proxying to `backend`."""
    matcher_name = matcher_name.lstrip("@")
    if not matcher_name:
        raise ValueError("matcher name must not be empty")
    if find_service(container, matcher_name) is not None:
        raise ValueError(f"container already has a service named {matcher_name!r}")

    directives: List[Directive] = []
    if backend:
        directives.append(
            Directive(name="reverse_proxy", args=[backend], raw=f"reverse_proxy {backend}")
        )

    service = Service(
        matcher_name=matcher_name,
        hostname=f"{subdomain}.{base_domain(container, config)}",
        directives=directives,
    )
    return replace(container, services=[*container.services, service])


def remove_service(container: Container, matcher_name: str) -> Container:
    matcher_name = matcher_name.lstrip("@")
    if find_service(container, matcher_name) is None:
        raise KeyError(matcher_name)
    return replace(
        container,
        services=[s for s in container.services if s.matcher_name != matcher_name],
    )

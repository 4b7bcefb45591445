# Document structures for the Caddyfile language

import uuid
from dataclasses import dataclass, field
from typing import List, Optional


def new_id() -> str:
    """Synthetic, process-local identifier. Not stable across re-parses."""
    return uuid.uuid4().hex[:12]


@dataclass
class Directive:
    name: str
    args: List[str] = field(default_factory=list)
    block: Optional[List["Directive"]] = None  # None: no brace body at all
    raw: Optional[str] = None                  # verbatim source header, if parsed
    id: str = field(default_factory=new_id, compare=False)

    @property
    def is_matcher(self) -> bool:
        return self.name.startswith("@")

    @property
    def matcher_name(self) -> Optional[str]:
        return self.name[1:] if self.is_matcher else None

    @property
    def has_block(self) -> bool:
        return self.block is not None


@dataclass
class SiteBlock:
    addresses: List[str]
    directives: List[Directive] = field(default_factory=list)
    tag: Optional[str] = None  # value of the leading @id line
    id: str = field(default_factory=new_id, compare=False)


@dataclass
class Document:
    global_options: List[Directive] = field(default_factory=list)
    site_blocks: List[SiteBlock] = field(default_factory=list)

    def find_by_tag(self, tag: str) -> Optional[SiteBlock]:
        for block in self.site_blocks:
            if block.tag == tag:
                return block
        return None

    def find_by_id(self, block_id: str) -> Optional[SiteBlock]:
        for block in self.site_blocks:
            if block.id == block_id:
                return block
        return None


@dataclass
class Service:
    """
    One named matcher plus its handler inside a Container:

      @api host api.svc.example.com
      handle @api {
        reverse_proxy localhost:3000
      }
    """
    matcher_name: str
    hostname: str
    directives: List[Directive] = field(default_factory=list)
    tag: Optional[str] = None
    id: str = field(default_factory=new_id, compare=False)
    matchers: List[Directive] = field(default_factory=list)  # other definitions of the same @name (path, method, ...)


@dataclass
class Container:
    """
    Derived view of a wildcard site block: shared configuration that every
    service inherits, plus the services themselves. Never stored; built by
    caddyfile_container.to_container and turned back into a SiteBlock by
    caddyfile_container.from_container.
    """
    wildcard_address: str
    shared_config: List[Directive] = field(default_factory=list)
    services: List[Service] = field(default_factory=list)
    id: str = field(default_factory=new_id, compare=False)
    extra_addresses: List[str] = field(default_factory=list)
    tag: Optional[str] = None
    matchers: List[Directive] = field(default_factory=list)  # matchers not owned by a service
    routes: List[Directive] = field(default_factory=list)    # handle blocks that are not services
    fallback: Optional[Directive] = None                     # the zero-argument handle
    warnings: List[str] = field(default_factory=list, compare=False)

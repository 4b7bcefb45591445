# Ready-made site blocks for common setups

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ast_struct import Directive, SiteBlock


@dataclass
class RecipeField:
    name: str
    label: str
    type: str = "text"  # "text", "number", "select", "boolean"
    placeholder: Optional[str] = None
    description: Optional[str] = None
    required: bool = False
    options: List[str] = field(default_factory=list)
    default: Optional[str] = None


@dataclass
class Recipe:
    id: str
    name: str
    description: str
    category: str  # "basic", "proxy", "static", "advanced"
    fields: List[RecipeField]
    build: Callable[[Dict[str, str]], List[Directive]]
    address: Callable[[Dict[str, str]], str]

    def generate(self, values: Dict[str, str]) -> SiteBlock:
        """
        Fill in defaults, check required fields and build the site block.
        Boolean fields take "true"/"false".
        """
        filled: Dict[str, str] = {}
        for f in self.fields:
            value = values.get(f.name)
            if value is None or str(value).strip() == "":
                value = f.default
            if f.required and (value is None or str(value).strip() == ""):
                raise ValueError(f"recipe {self.id!r}: field {f.name!r} is required")
            if f.type == "select" and value is not None and f.options and value not in f.options:
                raise ValueError(f"recipe {self.id!r}: {value!r} is not a valid {f.name!r}")
            filled[f.name] = "" if value is None else str(value).strip()
        return SiteBlock(addresses=[self.address(filled)], directives=self.build(filled))


def _d(name: str, *args: str, block: Optional[List[Directive]] = None) -> Directive:
    args_list = [a for a in args if a]
    return Directive(name=name, args=args_list, block=block, raw=" ".join([name, *args_list]))


def _is_true(value: str) -> bool:
    return value.lower() in ("true", "1", "yes", "on")


def _reverse_proxy(v: Dict[str, str]) -> List[Directive]:
    directives = [_d("reverse_proxy", v["backend"])]
    if not _is_true(v["https"]):
        directives.append(_d("tls", "internal"))
    return directives


def _static_site(v: Dict[str, str]) -> List[Directive]:
    directives = [_d("root", "*", v["root"]), _d("file_server")]
    if _is_true(v["compression"]):
        directives.append(_d("encode", "gzip"))
    return directives


def _spa_with_api(v: Dict[str, str]) -> List[Directive]:
    return [
        _d("root", "*", v["root"]),
        _d("handle", v["api_path"], block=[_d("reverse_proxy", v["api_backend"])]),
        _d("file_server"),
        _d("try_files", "{path}", "/index.html"),
        _d("encode", "gzip"),
    ]


def _redirect(v: Dict[str, str]) -> List[Directive]:
    return [_d("redir", v["to"], "permanent" if _is_true(v["permanent"]) else "")]


def _port_binding(v: Dict[str, str]) -> List[Directive]:
    if v["response"] == "proxy":
        return [_d("reverse_proxy", v["value"])]
    if v["response"] == "static":
        return [_d("root", "*", v["value"]), _d("file_server")]
    text = v["value"].replace("\\", "\\\\").replace('"', '\\"')
    return [_d("respond", f'"{text}"')]


RECIPES: List[Recipe] = [
    Recipe(
        id="reverse-proxy",
        name="Reverse Proxy",
        description="Proxy requests from a domain to an upstream server",
        category="proxy",
        fields=[
            RecipeField("domain", "Domain", placeholder="api.example.com", required=True),
            RecipeField("backend", "Upstream Server", placeholder="localhost:8080",
                        required=True, default="localhost:8080"),
            RecipeField("https", "Enable HTTPS", type="boolean", default="true",
                        description="Automatically obtain and renew certificates"),
        ],
        build=_reverse_proxy,
        address=lambda v: v["domain"],
    ),
    Recipe(
        id="static-site",
        name="Static Website",
        description="Serve static files with optional compression",
        category="static",
        fields=[
            RecipeField("domain", "Domain", placeholder="example.com", required=True),
            RecipeField("root", "Root Directory", placeholder="/var/www/html",
                        required=True, default="/var/www/html"),
            RecipeField("compression", "Enable Compression", type="boolean", default="true"),
        ],
        build=_static_site,
        address=lambda v: v["domain"],
    ),
    Recipe(
        id="spa-with-api",
        name="SPA with API",
        description="Single Page Application with API proxy",
        category="proxy",
        fields=[
            RecipeField("domain", "Domain", placeholder="app.example.com", required=True),
            RecipeField("root", "App Directory", placeholder="/app/dist",
                        required=True, default="/app/dist"),
            RecipeField("api_path", "API Path", placeholder="/api/*", required=True, default="/api/*"),
            RecipeField("api_backend", "API Upstream", placeholder="localhost:8080",
                        required=True, default="localhost:8080"),
        ],
        build=_spa_with_api,
        address=lambda v: v["domain"],
    ),
    Recipe(
        id="redirect",
        name="Redirect",
        description="Redirect one domain to another",
        category="basic",
        fields=[
            RecipeField("from", "From Domain", placeholder="www.example.com", required=True),
            RecipeField("to", "To URL", placeholder="https://example.com", required=True),
            RecipeField("permanent", "Permanent Redirect (301)", type="boolean", default="true"),
        ],
        build=_redirect,
        address=lambda v: v["from"],
    ),
    Recipe(
        id="port-binding",
        name="Port Binding",
        description="Listen on a specific port",
        category="basic",
        fields=[
            RecipeField("port", "Port", type="number", placeholder="8080", required=True, default="8080"),
            RecipeField("response", "Response Type", type="select", required=True,
                        options=["text", "proxy", "static"], default="text"),
            RecipeField("value", "Value", placeholder="Hello World! or localhost:3000", required=True,
                        description="Response text, upstream address, or file path"),
        ],
        build=_port_binding,
        address=lambda v: f":{v['port']}",
    ),
]


def get_recipe(recipe_id: str) -> Optional[Recipe]:
    for recipe in RECIPES:
        if recipe.id == recipe_id:
            return recipe
    return None


def recipes_by_category(category: str) -> List[Recipe]:
    return [r for r in RECIPES if r.category == category]


def blank_site_block(address: str = "example.com") -> SiteBlock:
    return SiteBlock(addresses=[address])

from __future__ import annotations

import pytest

from ast_struct import Document
from caddyfile_parser import parse_caddyfile
from caddyfile_recipes import RECIPES, blank_site_block, get_recipe, recipes_by_category
from caddyfile_serializer import serialize_caddyfile


def _lines(block):
    return [(d.name, d.args) for d in block.directives]


def test_reverse_proxy_without_https_uses_internal_tls() -> None:
    block = get_recipe("reverse-proxy").generate({"domain": "api.example.com", "https": "false"})

    assert block.addresses == ["api.example.com"]
    assert _lines(block) == [("reverse_proxy", ["localhost:8080"]), ("tls", ["internal"])]


def test_reverse_proxy_defaults_to_public_https() -> None:
    block = get_recipe("reverse-proxy").generate({"domain": "api.example.com", "backend": "10.0.0.5:9000"})
    assert _lines(block) == [("reverse_proxy", ["10.0.0.5:9000"])]


def test_static_site() -> None:
    block = get_recipe("static-site").generate({"domain": "example.com", "compression": "false"})
    assert _lines(block) == [("root", ["*", "/var/www/html"]), ("file_server", [])]


def test_redirect_drops_empty_permanent_flag() -> None:
    block = get_recipe("redirect").generate(
        {"from": "www.example.com", "to": "https://example.com", "permanent": "false"}
    )
    assert _lines(block) == [("redir", ["https://example.com"])]


def test_port_binding_quotes_text_response() -> None:
    block = get_recipe("port-binding").generate({"port": "9000", "value": 'say "hi"'})

    assert block.addresses == [":9000"]
    assert _lines(block) == [("respond", ['"say \\"hi\\""'])]


def test_port_binding_rejects_unknown_response() -> None:
    with pytest.raises(ValueError):
        get_recipe("port-binding").generate({"value": "x", "response": "teapot"})


def test_missing_required_field() -> None:
    with pytest.raises(ValueError):
        get_recipe("static-site").generate({})


@pytest.mark.parametrize("recipe", RECIPES, ids=lambda r: r.id)
def test_every_recipe_serializes_to_parseable_text(recipe) -> None:
    values = {"domain": "example.com", "from": "old.example.com", "to": "https://example.com", "value": "hello"}
    block = recipe.generate(values)
    text = serialize_caddyfile(Document(site_blocks=[block]))

    again = parse_caddyfile(text).site_blocks[0]
    assert again.addresses == block.addresses
    assert _lines(again) == _lines(block)


def test_lookup_helpers() -> None:
    assert get_recipe("nope") is None
    assert {r.id for r in recipes_by_category("proxy")} == {"reverse-proxy", "spa-with-api"}
    assert blank_site_block().addresses == ["example.com"]
    assert blank_site_block().directives == []

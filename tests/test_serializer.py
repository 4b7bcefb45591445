from __future__ import annotations

import pytest

from ast_struct import Directive, Document, SiteBlock
from caddyfile_parser import parse_caddyfile
from caddyfile_serializer import (
    format_caddyfile,
    raw_is_current,
    serialize_caddyfile,
    serialize_directive,
)
from conftest import SAMPLE, TWO_SERVICES, shape


def test_canonical_text_is_a_fixed_point(sample_text: str) -> None:
    assert serialize_caddyfile(parse_caddyfile(sample_text)) == sample_text


@pytest.mark.parametrize(
    "text",
    [
        SAMPLE,
        TWO_SERVICES,
        "example.com { @id mysite\n reverse_proxy localhost:8080 }",
        "# lead\n\n:8080 {\n    respond   \"hi there\"   # inline\n\n    handle { abort }\n}\n",
        "a.com,\nb.com {\n  route {\n    handle /x {\n      respond x\n    }\n  }\n  handle {\n  }\n}",
    ],
)
def test_round_trip_keeps_structure(text: str) -> None:
    document = parse_caddyfile(text)
    again = parse_caddyfile(serialize_caddyfile(document))
    assert shape(again) == shape(document)


@pytest.mark.parametrize("text", [SAMPLE, TWO_SERVICES, "x.com {\n  encode   zstd gzip  # both\n}"])
def test_reserialization_is_idempotent(text: str) -> None:
    once = serialize_caddyfile(parse_caddyfile(text))
    assert serialize_caddyfile(parse_caddyfile(once)) == once


def test_tag_survives_round_trip() -> None:
    text = serialize_caddyfile(parse_caddyfile("example.com { @id mysite\n reverse_proxy localhost:8080 }"))

    assert text == "example.com {\n\t@id mysite\n\treverse_proxy localhost:8080\n}\n"
    block = parse_caddyfile(text).site_blocks[0]
    assert block.tag == "mysite"
    assert len(block.directives) == 1


def test_unedited_directive_keeps_its_source_line() -> None:
    doc = parse_caddyfile("a.com {\n\trespond   \"hi\"    200 # greeting\n}")
    assert serialize_caddyfile(doc) == 'a.com {\n\trespond   "hi"    200 # greeting\n}\n'


def test_edited_directive_is_rebuilt() -> None:
    doc = parse_caddyfile("a.com {\n\trespond   \"hi\"    200 # greeting\n}")
    directive = doc.site_blocks[0].directives[0]
    directive.args[1] = "404"

    assert not raw_is_current(directive)
    assert serialize_caddyfile(doc) == 'a.com {\n\trespond "hi" 404\n}\n'


def test_programmatic_directive_without_raw() -> None:
    doc = Document(
        site_blocks=[
            SiteBlock(
                addresses=["a.com", "b.com"],
                directives=[
                    Directive(name="file_server"),
                    Directive(
                        name="handle",
                        args=["/api/*"],
                        block=[Directive(name="reverse_proxy", args=["localhost:9000"])],
                    ),
                ],
                tag="tagged",
            )
        ]
    )
    assert serialize_caddyfile(doc) == (
        "a.com, b.com {\n"
        "\t@id tagged\n"
        "\tfile_server\n"
        "\thandle /api/* {\n"
        "\t\treverse_proxy localhost:9000\n"
        "\t}\n"
        "}\n"
    )


def test_block_header_with_comment_in_raw_is_rebuilt() -> None:
    directive = Directive(name="handle", args=["@api"], block=[], raw="handle @api # service")
    assert serialize_directive(directive, depth=0) == ["handle @api {", "}"]


def test_global_options_come_first_with_blank_line() -> None:
    doc = Document(
        global_options=[Directive(name="admin", args=["off"])],
        site_blocks=[SiteBlock(addresses=[":80"], directives=[Directive(name="respond", args=["ok"])])],
    )
    assert serialize_caddyfile(doc) == "{\n\tadmin off\n}\n\n:80 {\n\trespond ok\n}\n"


def test_empty_document_serializes_to_empty_string() -> None:
    assert serialize_caddyfile(Document()) == ""


def test_format_caddyfile_normalizes_indentation() -> None:
    assert format_caddyfile("a.com {\n    file_server\n}") == "a.com {\n\tfile_server\n}\n"

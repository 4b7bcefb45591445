"""Shared pytest fixtures for the Caddyfile engine tests."""

import pytest

# Canonical form: serializing a parse of this text gives the text back.
SAMPLE = "\n".join(
    [
        "{",
        "\temail admin@example.com",
        "}",
        "",
        "example.com, www.example.com {",
        "\t@id main",
        "\tencode gzip",
        "\treverse_proxy localhost:8080 {",
        "\t\theader_up Host {host}",
        "\t}",
        "}",
        "",
        "*.svc.example.com {",
        "\ttls internal",
        "\t@api host api.svc.example.com",
        "\thandle @api {",
        "\t\t@id api-svc",
        "\t\treverse_proxy localhost:3000",
        "\t}",
        "\thandle {",
        "\t\tabort",
        "\t}",
        "}",
        "",
    ]
)

TWO_SERVICES = "\n".join(
    [
        "*.svc.com {",
        "\tencode gzip",
        "\t@api host api.svc.com",
        "\thandle @api {",
        "\t\treverse_proxy localhost:3000",
        "\t}",
        "\t@web host web.svc.com",
        "\thandle @web {",
        "\t\treverse_proxy localhost:4000",
        "\t}",
        "}",
        "",
    ]
)


def shape(document):
    """Everything round-trips must keep: addresses, tags, names, args, nesting."""

    def directives(ds):
        if ds is None:
            return None
        return [(d.name, tuple(d.args), directives(d.block)) for d in ds]

    return (
        directives(document.global_options),
        [(tuple(b.addresses), b.tag, directives(b.directives)) for b in document.site_blocks],
    )


@pytest.fixture
def sample_text():
    return SAMPLE


@pytest.fixture
def two_services_text():
    return TWO_SERVICES

"""Tests for the init and auth-reply stages."""

import xml.etree.ElementTree as ET

import pytest

from ocsso.auth import finalization_stage, initialization_stage
from ocsso.errors import GatewayError, ProtocolError
from ocsso.gateway import GatewayClient


def test_initialization_uses_resolved_url(fake_opener, fake_response, init_xml):
    opener = fake_opener({
        ("GET", "https://vpn.example.com"): fake_response("https://vpn2.example.com"),
        ("POST", "https://vpn2.example.com"): fake_response("https://vpn2.example.com", init_xml),
    })
    client = GatewayClient(opener=opener)

    result, target_url = initialization_stage(client, "https://vpn.example.com")

    assert target_url == "https://vpn2.example.com"
    assert result.token_cookie_name == "ssotoken"
    post = opener.requests[1]
    assert post.full_url == "https://vpn2.example.com"
    root = ET.fromstring(post.data)
    assert root.get("type") == "init"
    assert root.findtext("group-access") == "https://vpn2.example.com"


def test_initialization_get_failure_skips_post(fake_opener):
    import urllib.error

    opener = fake_opener({
        ("GET", "https://vpn.example.com"): urllib.error.URLError("name resolution failed"),
    })
    client = GatewayClient(opener=opener)

    with pytest.raises(GatewayError):
        initialization_stage(client, "https://vpn.example.com")
    assert [req.get_method() for req in opener.requests] == ["GET"]


def test_initialization_parse_failure_carries_body(fake_opener, fake_response):
    opener = fake_opener({
        ("GET", "https://vpn.example.com"): fake_response("https://vpn.example.com"),
        ("POST", "https://vpn.example.com"): fake_response("https://vpn.example.com", b"<html>"),
    })
    client = GatewayClient(opener=opener)

    with pytest.raises(ProtocolError) as exc:
        initialization_stage(client, "https://vpn.example.com")
    assert exc.value.body == b"<html>"


def test_finalization(fake_opener, fake_response, final_xml):
    opener = fake_opener({
        ("POST", "https://vpn2.example.com"): fake_response("https://vpn2.example.com", final_xml),
    })
    client = GatewayClient(client_version="4.7.00136", opener=opener)

    result = finalization_stage(client, "https://vpn2.example.com", "tok456", "abc123")

    assert result.cookie == "sesscookie"
    assert result.fingerprint == "fp789"
    root = ET.fromstring(opener.requests[0].data)
    assert root.get("type") == "auth-reply"
    assert root.findtext("opaque") == "abc123"
    assert root.findtext("auth/sso-token") == "tok456"
    assert root.findtext("version") == "4.7.00136"

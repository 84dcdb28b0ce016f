"""Locale and version negotiation tests."""

from __future__ import annotations

import pytest

from docsfront.metrics import get_metrics
from docsfront.negotiation import (
    DEFAULT_API_VERSION,
    CodeSample,
    LocaleVersionNegotiator,
    VersionContext,
    normalize_version,
    split_url,
    version_name,
)


@pytest.fixture()
def negotiator(store) -> LocaleVersionNegotiator:
    return LocaleVersionNegotiator(store)


def test_split_url_strips_locale_and_version() -> None:
    assert split_url("/ja/enterprise-cloud@latest/get-started?x=1") == (
        "ja",
        "enterprise-cloud@latest",
        ["get-started"],
        "x=1",
    )
    assert split_url("/get-started") == (None, None, ["get-started"], "")


def test_enterprise_server_latest_maps_to_newest_release() -> None:
    assert normalize_version("enterprise-server@latest") == "enterprise-server@3.14"
    assert normalize_version("enterprise-server@2.0") is None


def test_version_names() -> None:
    assert version_name("enterprise-cloud@latest") == "Enterprise Cloud"
    assert version_name("enterprise-server@3.13") == "Enterprise Server 3.13"


def test_missing_locale_redirects_to_default(negotiator) -> None:
    before = get_metrics().locale_redirects_total.get("missing_locale")
    navigation = negotiator.resolve("/get-started/start-your-journey/hello-world")
    assert navigation.is_redirect
    assert navigation.redirect_to == "/en/get-started/start-your-journey/hello-world"
    assert get_metrics().locale_redirects_total.get("missing_locale") == before + 1


def test_first_visit_remembers_url_locale(negotiator, store) -> None:
    navigation = negotiator.resolve("/ja")
    assert not navigation.is_redirect
    assert navigation.effective_locale == "ja"
    assert navigation.set_cookies == {"locale": "ja"}
    assert store.get("locale") == "ja"


def test_cookie_locale_wins_over_url_locale(negotiator, store) -> None:
    store.set("locale", "ja")
    navigation = negotiator.resolve("/en/get-started/start-your-journey/hello-world")
    assert navigation.redirect_to == "/ja/get-started/start-your-journey/hello-world"
    assert navigation.effective_locale == "ja"


def test_cookie_locale_redirect_keeps_query(negotiator, store) -> None:
    store.set("locale", "ja")
    navigation = negotiator.resolve("/en/enterprise-cloud@latest/get-started?platform=mac&cb=1")
    assert navigation.redirect_to == "/ja/enterprise-cloud@latest/get-started?platform=mac&cb=1"


def test_version_cookie_never_overrides_url(negotiator, store) -> None:
    negotiator.select_version("/en/get-started", "enterprise-cloud@latest")
    assert store.get("version") == "enterprise-cloud@latest"

    context = negotiator.context_for("/en/get-started")
    assert context.cookie_version == "enterprise-cloud@latest"
    assert context.requested_version is None

    navigation = negotiator.resolve("/en/get-started")
    assert not navigation.is_redirect
    assert navigation.effective_version == "free-pro-team@latest"


    assert navigation.effective_locale == "ja"


def test_missing_locale_uses_cookie_and_keeps_query(negotiator, store) -> None:
    store.set("locale", "ja")
    navigation = negotiator.resolve("/get-started/start-your-journey/hello-world?cb=0.5")
    assert navigation.redirect_to == "/ja/get-started/start-your-journey/hello-world?cb=0.5"


def test_unknown_cookie_locale_is_ignored(negotiator, store) -> None:
    store.set("locale", "xx")
    navigation = negotiator.resolve("/en/get-started")
    assert not navigation.is_redirect
    assert navigation.effective_locale == "en"


def test_rest_pages_gain_api_version(negotiator) -> None:
    navigation = negotiator.resolve("/rest")
    assert navigation.redirect_to == f"/en/rest?apiVersion={DEFAULT_API_VERSION}"

    followed = negotiator.resolve(navigation.redirect_to)
    assert not followed.is_redirect
    assert followed.path == "/rest"


def test_rest_pages_use_remembered_api_version(negotiator, store) -> None:
    store.set("apiVersion", "2026-03-10")
    navigation = negotiator.resolve("/en/rest/actions/artifacts")
    assert navigation.redirect_to == "/en/rest/actions/artifacts?apiVersion=2026-03-10"


def test_version_segment_is_kept_in_redirect(negotiator) -> None:
    navigation = negotiator.resolve("/enterprise-cloud@latest")
    assert navigation.redirect_to == "/en/enterprise-cloud@latest"
    assert navigation.effective_version == "enterprise-cloud@latest"


def test_default_version_has_no_segment(negotiator) -> None:
    navigation = negotiator.resolve("/en/get-started")
    assert navigation.effective_version == "free-pro-team@latest"
    assert navigation.path == "/get-started"


def test_domain_parameter_is_remembered(negotiator) -> None:
    negotiator.resolve("/en/enterprise-server@3.14/get-started?ghdomain=example.ghe.com")
    assert negotiator.custom_domain() == "example.ghe.com"


def test_invalid_domain_parameter_is_ignored(negotiator) -> None:
    negotiator.resolve("/en/get-started?ghdomain=not a domain")
    assert negotiator.custom_domain() is None


def test_select_locale_writes_cookie_and_returns_url(negotiator, store) -> None:
    target = negotiator.select_locale("/en/enterprise-cloud@latest/get-started?x=1", "ja")
    assert target == "/ja/enterprise-cloud@latest/get-started?x=1"
    assert store.get("locale") == "ja"
    with pytest.raises(ValueError):
        negotiator.select_locale("/en", "tlh")


def test_select_version_keeps_locale_and_path(negotiator, store) -> None:
    target = negotiator.select_version("/ja/get-started", "enterprise-server@latest")
    assert target == "/ja/enterprise-server@3.14/get-started"
    assert store.get("version") == "enterprise-server@3.14"
    assert negotiator.select_version(target, "free-pro-team@latest") == "/ja/get-started"


def test_home_url_keeps_version(negotiator) -> None:
    assert negotiator.home_url("en", "enterprise-cloud@latest") == "/en/enterprise-cloud@latest"
    assert negotiator.home_url("ja", "free-pro-team@latest") == "/ja"


def test_code_samples_replace_domain_only_on_server() -> None:
    samples = [
        CodeSample("curl https://HOSTNAME/api/v1", replace_domain=True),
        CodeSample("curl https://HOSTNAME/api/v2"),
    ]
    context = VersionContext("enterprise-server@3.14", custom_domain="example.ghe.com")
    assert [context.render(sample) for sample in samples] == [
        "curl https://example.ghe.com/api/v1",
        "curl https://HOSTNAME/api/v2",
    ]

    context.switch("enterprise-cloud@latest")
    assert context.domain_active is False
    assert context.render(samples[0]) == "curl https://HOSTNAME/api/v1"

    context.switch("enterprise-server@3.13")
    assert context.render(samples[0]) == "curl https://example.ghe.com/api/v1"


def test_no_domain_means_no_replacement() -> None:
    context = VersionContext("enterprise-server@3.14")
    assert context.render(CodeSample("https://HOSTNAME", replace_domain=True)) == "https://HOSTNAME"

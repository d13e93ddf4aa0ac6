"""
Property-based tests for the Domain model and hosts entries.

Uses Hypothesis for property-based testing of file name derivation,
status handling and hosts line parsing.
"""

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from local_domains.enums import DomainStatus
from local_domains.exceptions import ValidationError
from local_domains.models import (
    HOSTS_SIGNATURE,
    Domain,
    HostEntry,
    parse_status,
)


# Strategies for generating valid test data

hostname_strategy = st.builds(
    lambda labels, tld: ".".join(labels + [tld]),
    st.lists(
        st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-", min_size=1, max_size=12),
        min_size=1,
        max_size=3,
    ),
    st.sampled_from(["test", "local", "com", "dev"]),
)

ipv4_strategy = st.tuples(*[st.integers(min_value=0, max_value=255)] * 4).map(
    lambda parts: ".".join(str(p) for p in parts)
)

port_strategy = st.integers(min_value=1, max_value=65535)


@st.composite
def domain_strategy(draw) -> Domain:
    return Domain(
        source=draw(hostname_strategy),
        destination=f"{draw(ipv4_strategy)}:{draw(port_strategy)}",
        status=draw(st.sampled_from(list(DomainStatus))),
    )


class TestConfigFileNameProperty:
    """
    Property-based tests for the derived proxy file name.

    **Feature: local-domains, Property: config_file_name is stable and injective on ports**
    """

    @given(source=hostname_strategy, ip=ipv4_strategy, port=port_strategy)
    @settings(max_examples=100)
    def test_identical_domains_share_file_name(self, source: str, ip: str, port: int) -> None:
        """Two domains built from the same source and destination map to the same file."""
        first = Domain(source, f"{ip}:{port}")
        second = Domain(source, f"{ip}:{port}", DomainStatus.INACTIVE)

        assert first.config_file_name == second.config_file_name
        assert first.config_file_name == f"{source}-{ip}${port}.conf"

    @given(source=hostname_strategy, ip=ipv4_strategy, port=port_strategy, other=port_strategy)
    @settings(max_examples=100)
    def test_changing_port_changes_file_name(
        self, source: str, ip: str, port: int, other: int
    ) -> None:
        assume(port != other)

        assert (
            Domain(source, f"{ip}:{port}").config_file_name
            != Domain(source, f"{ip}:{other}").config_file_name
        )

    @given(domain=domain_strategy())
    @settings(max_examples=100)
    def test_file_name_has_no_colon(self, domain: Domain) -> None:
        assert ":" not in domain.config_file_name
        assert domain.config_file_name.endswith(".conf")

    def test_scenario_file_name(self) -> None:
        domain = Domain("api.example.com", "127.0.0.1:5001")

        assert domain.config_file_name == "api.example.com-127.0.0.1$5001.conf"


class TestDomainValueProperty:
    """
    Tests for Domain construction, status changes and serialization.

    **Feature: local-domains, Property: Domain is an immutable value**
    """

    @given(domain=domain_strategy(), status=st.sampled_from(list(DomainStatus)))
    @settings(max_examples=100)
    def test_with_status_returns_new_value(self, domain: Domain, status: DomainStatus) -> None:
        updated = domain.with_status(status)

        assert updated.status == status
        assert updated.source == domain.source
        assert updated.destination == domain.destination
        assert updated.config_file_name == domain.config_file_name

    @given(domain=domain_strategy())
    @settings(max_examples=100)
    def test_dict_form_excludes_derived_fields(self, domain: Domain) -> None:
        data = domain.to_dict()

        assert set(data) == {"source", "destination", "status"}
        assert Domain.from_dict(data) == domain

    @pytest.mark.parametrize("source,destination", [
        ("", "127.0.0.1:80"),
        ("   ", "127.0.0.1:80"),
        ("api.test", ""),
    ])
    def test_empty_fields_are_rejected(self, source: str, destination: str) -> None:
        with pytest.raises(ValidationError):
            Domain(source, destination)

    def test_default_status_is_active(self) -> None:
        assert Domain("api.test", "127.0.0.1:80").is_active

    def test_frozen(self) -> None:
        domain = Domain("api.test", "127.0.0.1:80")
        with pytest.raises(AttributeError):
            domain.status = DomainStatus.INACTIVE  # type: ignore[misc]

    @pytest.mark.parametrize("destination,address", [
        ("127.0.0.1:5001", "127.0.0.1"),
        ("[::1]:8080", "::1"),
        ("10.0.0.5:3000", "10.0.0.5"),
    ])
    def test_address_strips_port(self, destination: str, address: str) -> None:
        assert Domain("api.test", destination).address == address


class TestParseStatus:
    """Legacy integer statuses and string values are both accepted."""

    @pytest.mark.parametrize("value,expected", [
        (1, DomainStatus.ACTIVE),
        (0, DomainStatus.INACTIVE),
        ("active", DomainStatus.ACTIVE),
        ("INACTIVE", DomainStatus.INACTIVE),
        (DomainStatus.ACTIVE, DomainStatus.ACTIVE),
    ])
    def test_known_values(self, value, expected: DomainStatus) -> None:
        assert parse_status(value) == expected

    @pytest.mark.parametrize("value", [2, -1, "enabled", None, True])
    def test_unknown_values(self, value) -> None:
        with pytest.raises(ValidationError):
            parse_status(value)


class TestHostEntryParsingProperty:
    """
    Property-based tests for hosts line parsing.

    **Feature: local-domains, Property: only signature-tagged lines are managed**
    """

    @given(ip=ipv4_strategy, name=hostname_strategy)
    @settings(max_examples=100)
    def test_generated_line_parses_back(self, ip: str, name: str) -> None:
        entry = HostEntry(ip, name)

        assert HostEntry.from_line(entry.to_line()) == entry

    @given(
        ip=ipv4_strategy,
        name=hostname_strategy,
        comment=st.one_of(st.none(), st.sampled_from(["localhost", "vidos", "local-domains-x", "added by docker"])),
    )
    @settings(max_examples=100)
    def test_foreign_lines_are_ignored(self, ip: str, name: str, comment) -> None:
        line = f"{ip} {name}" if comment is None else f"{ip} {name} # {comment}"

        assert HostEntry.from_line(line) is None

    @pytest.mark.parametrize("line", [
        "",
        "# 127.0.0.1 api.test # local-domains",
        "   ",
        "127.0.0.1",
    ])
    def test_non_entries(self, line: str) -> None:
        assert HostEntry.from_line(line) is None

    @pytest.mark.parametrize("line", [
        f"127.0.0.1 api.test # {HOSTS_SIGNATURE}",
        f"127.0.0.1\tapi.test\t#{HOSTS_SIGNATURE}",
        f"127.0.0.1 api.test   #   {HOSTS_SIGNATURE}  ",
        f"127.0.0.1 api.test # {HOSTS_SIGNATURE}\r",
    ])
    def test_spacing_variants_are_managed(self, line: str) -> None:
        assert HostEntry.from_line(line) == HostEntry("127.0.0.1", "api.test")

    def test_from_domain_strips_port(self) -> None:
        entry = HostEntry.from_domain(Domain("api.example.com", "127.0.0.1:5001"))

        assert entry == HostEntry("127.0.0.1", "api.example.com")
        assert entry.to_line() == "127.0.0.1 api.example.com # local-domains"

"""Architectural boundary tests using pytest-archon.

These tests verify that the codebase follows clean architecture principles:
- Domain layer has no dependencies on adapters
- Application services don't depend on adapters
- Adapters can depend on domain
- No circular dependencies
"""

from pytest_archon import archrule


def test_domain_models_have_no_dependencies() -> None:
    """Domain models should not import any other modules except standard library and domain itself."""
    (
        archrule("domain models", comment="Domain models should be independent")
        .match("nearby_transit.domain.models*")
        .should_not_import("nearby_transit.adapters*")
        .should_not_import("nearby_transit.application*")
        .should_not_import("nearby_transit.domain.contracts*")
        .should_not_import("nearby_transit.domain.ports*")
        .may_import("nearby_transit.domain.models*")
        .check("nearby_transit")
    )


def test_domain_contracts_have_no_dependencies() -> None:
    """Domain contracts (protocols/interfaces) should not import adapters or application."""
    (
        archrule("domain contracts", comment="Domain contracts should be independent")
        .match("nearby_transit.domain.contracts*")
        .should_not_import("nearby_transit.adapters*")
        .should_not_import("nearby_transit.application*")
        .may_import("nearby_transit.domain.contracts*")
        .may_import("nearby_transit.domain.models*")
        .may_import("nearby_transit.domain.ports*")
        .check("nearby_transit")
    )


def test_domain_ports_have_no_dependencies() -> None:
    """Domain ports (interfaces) should not import adapters or application."""
    (
        archrule("domain ports", comment="Domain ports should be independent")
        .match("nearby_transit.domain.ports*")
        .should_not_import("nearby_transit.adapters*")
        .should_not_import("nearby_transit.application*")
        .may_import("nearby_transit.domain.ports*")
        .may_import("nearby_transit.domain.models*")
        .may_import("nearby_transit.domain.contracts*")
        .check("nearby_transit")
    )


def test_application_services_dont_import_adapters() -> None:
    """Application services should not depend on adapters (infrastructure layer)."""
    (
        archrule(
            "application services", comment="Application services should not depend on adapters"
        )
        .match("nearby_transit.application*")
        .should_not_import("nearby_transit.adapters*")
        .may_import("nearby_transit.domain*")
        .may_import("nearby_transit.application*")
        .check("nearby_transit")
    )


def test_adapters_dont_import_application() -> None:
    """Adapters should not import application services (to avoid cycles)."""
    (
        archrule(
            "adapters independence", comment="Adapters should not depend on application services"
        )
        .match("nearby_transit.adapters*")
        .should_not_import("nearby_transit.application*")
        .may_import("nearby_transit.domain*")
        .may_import("nearby_transit.adapters*")
        .check("nearby_transit", only_direct_imports=True)
    )


def test_no_circular_dependencies_in_domain() -> None:
    """Domain layer should not have circular dependencies."""
    (
        archrule("domain no cycles", comment="Domain layer should not have circular dependencies")
        .match("nearby_transit.domain*")
        .should_not_import("nearby_transit.adapters*")
        .should_not_import("nearby_transit.application*")
        .may_import("nearby_transit.domain*")
        .check("nearby_transit", only_direct_imports=True)
    )


def test_transit_api_adapter_is_standalone() -> None:
    """The Tranzy adapter should not depend on configuration, state or pollers."""
    (
        archrule("transit api independence", comment="API adapter only maps HTTP to domain")
        .match("nearby_transit.adapters.tranzy_api*")
        .should_not_import("nearby_transit.adapters.config*")
        .should_not_import("nearby_transit.adapters.state*")
        .should_not_import("nearby_transit.adapters.pollers*")
        .may_import("nearby_transit.domain*")
        .may_import("nearby_transit.adapters.tranzy_api*")
        .check("nearby_transit")
    )


def test_cli_dont_import_pollers() -> None:
    """CLI should not import pollers or state to allow one-off lookups without a loop."""
    (
        archrule("CLI independence", comment="CLI should not depend on the polling loop")
        .match("nearby_transit.cli")
        .should_not_import("nearby_transit.adapters.pollers*")
        .should_not_import("nearby_transit.adapters.state*")
        .may_import("nearby_transit.domain*")
        .may_import("nearby_transit.application*")
        .may_import("nearby_transit.adapters.config*")
        .may_import("nearby_transit.adapters.tranzy_api*")
        .check("nearby_transit")
    )

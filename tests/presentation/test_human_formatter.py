"""Tests for human-readable plan and report output."""

from converge.presentation import format_plan, format_report
from converge.provider import KindCapability
from converge.registry import ResourceRegistry


def test_create_plan_lists_changes_and_summary(network_registry, plan_for):
    output = format_plan(plan_for(network_registry), ascii_mode=True)
    
    assert "+ network.n1 will be created" in output
    assert '      cidr = "10.0.0.0/16"' in output
    assert "network = (known after apply)" in output
    assert output.endswith("Plan: 2 to create, 0 to update, 0 to replace, 0 to destroy, 0 unchanged.")


def test_no_changes_message(network_registry, run_apply, plan_for):
    run_apply(network_registry)
    output = format_plan(plan_for(network_registry), ascii_mode=True)
    assert "No changes. Infrastructure matches the configuration." in output
    assert "Plan:" not in output


def test_replace_shows_reason(network_registry, run_apply, plan_for):
    run_apply(network_registry)
    changed = ResourceRegistry()
    changed.register("network", "n1", {"name": "n1", "cidr": "10.0.0.0/16"})
    changed.register("subnet", "s1", {"name": "s1", "network": "${network.n1.id}", "cidr": "10.0.2.0/24"})
    
    output = format_plan(plan_for(changed), ascii_mode=True)
    assert "-/+ subnet.s1 must be replaced (cidr)" in output
    assert '"10.0.1.0/24" -> "10.0.2.0/24"  # forces replacement' in output
    assert "network.n1" not in output


def test_show_unchanged(network_registry, run_apply, plan_for, capabilities):
    run_apply(network_registry)
    changed = ResourceRegistry()
    changed.register("network", "n1", {"name": "n1", "cidr": "10.0.0.0/16"})
    changed.register("subnet", "s1", {"name": "s1", "network": "${network.n1.id}", "cidr": "10.0.1.0/24", "tier": "web"})
    
    output = format_plan(plan_for(changed), ascii_mode=True, show_unchanged=True)
    assert "network.n1 no changes" in output
    assert "~ subnet.s1 will be updated" in output
    assert 'tier = null -> "web"' in output


def test_destroy_plan(network_registry, run_apply, plan_for):
    run_apply(network_registry)
    output = format_plan(plan_for(ResourceRegistry()), ascii_mode=True)
    
    assert output.index("- subnet.s1 will be destroyed") < output.index("- network.n1 will be destroyed")
    assert "2 to destroy" in output


def test_ascii_mode_from_environment(network_registry, plan_for, monkeypatch):
    monkeypatch.setenv("CONVERGE_ASCII", "1")
    output = format_plan(plan_for(network_registry))
    assert output.startswith("+---")
    monkeypatch.delenv("CONVERGE_ASCII")
    assert format_plan(plan_for(network_registry)).startswith("┌")


def test_report_lists_outcomes(network_registry, provider, run_apply):
    provider.inject_failure("create", "network")
    _, report = run_apply(network_registry)
    
    output = format_report(report, ascii_mode=True)
    assert "[FAIL] network.n1 (create): failed - create network: rejected by provider" in output
    assert "[SKIP] subnet.s1 (create): skipped - dependency network.n1 did not apply" in output
    assert output.endswith("Apply incomplete: 0 applied, 1 failed, 1 skipped.")


def test_report_complete(network_registry, run_apply):
    _, report = run_apply(network_registry)
    output = format_report(report, ascii_mode=True)
    assert "[OK] network.n1 (create): applied" in output
    assert output.endswith("Apply complete: 2 applied, 0 failed, 0 skipped.")


def test_dependency_rewrite_listed_without_changes(network_registry, run_apply, plan_for):
    run_apply(network_registry)
    hinted = ResourceRegistry()
    hinted.register("network", "n1", {"name": "n1", "cidr": "10.0.0.0/16"})
    hinted.register("subnet", "s1", {"name": "s1", "network": "${network.n1.id}", "cidr": "10.0.1.0/24"})
    hinted.register("zone", "z1", {})
    run_apply(hinted)
    hinted_again = ResourceRegistry()
    hinted_again.register("network", "n1", {"name": "n1", "cidr": "10.0.0.0/16"})
    hinted_again.register("subnet", "s1", {"name": "s1", "network": "${network.n1.id}", "cidr": "10.0.1.0/24"},
                          depends_on=["zone.z1"])
    hinted_again.register("zone", "z1", {})
    
    output = format_plan(plan_for(hinted_again), ascii_mode=True)
    assert "No changes." in output
    assert "Recorded dependencies will be updated for: subnet.s1" in output

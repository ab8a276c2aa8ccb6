"""Tests for monover.propagation."""

from __future__ import annotations

import pytest

from monover.config import DependencyConfig
from monover.errors import InvalidBumpTypeError
from monover.graph import DependencyGraphBuilder
from monover.models import Changeset, DependencyPropagation, DependencyType
from monover.propagation import DependencyPropagator
from monover.resolution import VersionResolutionEngine
from tests.helpers import make_package


def _propagate(packages, changed, bump="patch", config=None):
    config = config or DependencyConfig()
    package_map = {p.name: p for p in packages}
    graph = DependencyGraphBuilder(config).build(packages)
    resolution = VersionResolutionEngine().resolve(
        Changeset(bump=bump, packages=set(changed)), package_map
    )
    return DependencyPropagator(graph, package_map, config).propagate(resolution)


class TestDependencyPropagator:
    def test_minor_bump_propagates_patch_and_rewrites_spec(self) -> None:
        packages = [
            make_package("A", "1.0.0"),
            make_package("B", "1.0.0", deps={"A": "^1.0.0"}),
        ]
        resolution = _propagate(packages, ["A"], bump="minor")

        a = resolution.get("A")
        b = resolution.get("B")
        assert str(a.next_version) == "1.1.0"
        assert str(b.next_version) == "1.0.1"
        assert b.reason == DependencyPropagation(triggered_by="A", depth=1)
        [dep] = b.dependency_updates
        assert (dep.name, dep.old_spec, dep.new_spec) == ("A", "^1.0.0", "^1.1.0")
        assert dep.dep_type is DependencyType.RUNTIME

    def test_depth_follows_breadth_first_levels(self, chain_packages) -> None:
        resolution = _propagate(chain_packages, ["a"])
        depths = {
            u.name: u.reason.depth for u in resolution.updates if u.is_propagated
        }
        assert depths == {"b": 1, "c": 2, "d": 3}
        assert resolution.get("c").reason.triggered_by == "b"

    def test_max_depth_limits_propagation(self, chain_packages) -> None:
        config = DependencyConfig(max_propagation_depth=2)
        resolution = _propagate(chain_packages, ["a"], config=config)
        assert resolution.names() == ["a", "b", "c"]
        assert resolution.get("d") is None

    def test_zero_depth_means_unlimited(self) -> None:
        packages = [make_package("p0")] + [
            make_package(f"p{i}", deps={f"p{i - 1}": "^1.0.0"}) for i in range(1, 30)
        ]
        resolution = _propagate(
            packages, ["p0"], config=DependencyConfig(max_propagation_depth=0)
        )
        assert resolution.update_count == 30

    def test_default_depth_is_ten(self) -> None:
        packages = [make_package("p0")] + [
            make_package(f"p{i}", deps={f"p{i - 1}": "^1.0.0"}) for i in range(1, 15)
        ]
        resolution = _propagate(packages, ["p0"])
        assert resolution.update_count == 11
        assert max(u.reason.depth for u in resolution.updates if u.is_propagated) == 10

    def test_dev_dependents_need_flag(self) -> None:
        packages = [make_package("A"), make_package("B", dev={"A": "^1.0.0"})]
        assert _propagate(packages, ["A"]).names() == ["A"]

        config = DependencyConfig(propagate_dev_dependencies=True)
        resolution = _propagate(packages, ["A"], config=config)
        assert resolution.names() == ["A", "B"]
        [dep] = resolution.get("B").dependency_updates
        assert dep.dep_type is DependencyType.DEV
        assert dep.new_spec == "^1.0.1"

    def test_each_package_updated_once(self) -> None:
        # d reachable through both b and c
        packages = [
            make_package("a"),
            make_package("b", deps={"a": "^1.0.0"}),
            make_package("c", deps={"a": "^1.0.0"}),
            make_package("d", deps={"b": "^1.0.0", "c": "^1.0.0"}),
        ]
        resolution = _propagate(packages, ["a"])
        assert sorted(resolution.names()) == ["a", "b", "c", "d"]
        assert resolution.get("d").reason.triggered_by == "b"
        assert resolution.get("d").reason.depth == 2
        assert len(resolution.get("d").dependency_updates) == 2

    def test_terminates_on_cycles(self) -> None:
        packages = [
            make_package("a", deps={"c": "^1.0.0"}),
            make_package("b", deps={"a": "^1.0.0"}),
            make_package("c", deps={"b": "^1.0.0"}),
        ]
        resolution = _propagate(
            packages, ["a"], config=DependencyConfig(max_propagation_depth=0)
        )
        assert sorted(resolution.names()) == ["a", "b", "c"]
        # a was bumped directly; its spec on c still follows c's new version
        assert resolution.get("a").dependency_updates[0].new_spec == "^1.0.1"

    def test_directly_changed_dependent_keeps_direct_reason(self) -> None:
        packages = [make_package("a"), make_package("b", deps={"a": "^1.0.0"})]
        resolution = _propagate(packages, ["a", "b"], bump="major")
        b = resolution.get("b")
        assert b.is_direct_change
        assert str(b.next_version) == "2.0.0"
        assert b.dependency_updates[0].new_spec == "^2.0.0"

    def test_workspace_protocol_preserved(self) -> None:
        packages = [
            make_package("a"),
            make_package("b", deps={"a": "workspace:^1.0.0"}),
            make_package("c", deps={"a": "file:../a"}),
        ]
        resolution = _propagate(packages, ["a"])
        assert resolution.names() == ["a", "b", "c"]
        assert resolution.get("b").dependency_updates == []
        assert resolution.get("c").dependency_updates == []

    def test_skip_protocols_configurable(self) -> None:
        packages = [make_package("a"), make_package("b", deps={"a": "~1.0.0"})]
        config = DependencyConfig(skip_protocols=["semver"])
        resolution = _propagate(packages, ["a"], config=config)
        assert resolution.get("b").dependency_updates == []

    def test_operators_preserved(self) -> None:
        packages = [
            make_package("a"),
            make_package("b", deps={"a": "~1.0.0"}),
            make_package("c", deps={"a": ">=1.0.0"}),
            make_package("d", deps={"a": "1.0.0"}),
            make_package("e", deps={"a": "^1.0.0 || ^2.0.0"}),
        ]
        resolution = _propagate(packages, ["a"], bump="minor")
        assert resolution.get("b").dependency_updates[0].new_spec == "~1.1.0"
        assert resolution.get("c").dependency_updates[0].new_spec == ">=1.1.0"
        assert resolution.get("d").dependency_updates[0].new_spec == "1.1.0"
        # Compound ranges are left alone, but the dependent is still bumped
        assert resolution.get("e").dependency_updates == []
        assert str(resolution.get("e").next_version) == "1.0.1"

    def test_none_propagation_bump_stops_after_first_level(self, chain_packages) -> None:
        config = DependencyConfig(propagation_bump="none")
        resolution = _propagate(chain_packages, ["a"], config=config)
        assert resolution.names() == ["a", "b"]
        b = resolution.get("b")
        assert not b.version_changed
        assert b.dependency_updates[0].new_spec == "^1.0.1"

    def test_propagation_disabled(self, chain_packages) -> None:
        config = DependencyConfig(propagate_updates=False)
        assert _propagate(chain_packages, ["a"], config=config).names() == ["a"]

    def test_invalid_propagation_bump(self, chain_packages) -> None:
        config = DependencyConfig(propagation_bump="huge")
        with pytest.raises(InvalidBumpTypeError):
            _propagate(chain_packages, ["a"], config=config)

    def test_no_dependents(self) -> None:
        resolution = _propagate([make_package("solo")], ["solo"])
        assert resolution.names() == ["solo"]

    def test_dev_pin_rewritten_when_both_packages_named(self) -> None:
        packages = [make_package("a"), make_package("b", dev={"a": "1.0.0"})]
        resolution = _propagate(packages, ["a", "b"], bump="minor")
        b = resolution.get("b")
        assert b.is_direct_change
        [dep] = b.dependency_updates
        assert dep.dep_type is DependencyType.DEV
        assert (dep.old_spec, dep.new_spec) == ("1.0.0", "1.1.0")

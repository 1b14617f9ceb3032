"""Unit tests for resource identifiers and FQN helpers."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from kubedeck.models.rid import DEPLOYMENTS, PODS, ResourceID, fqn, split_fqn

_segment = st.from_regex(r"[a-z][a-z0-9-]{0,15}", fullmatch=True)

# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParse:
    def test_core_group_has_empty_group(self) -> None:
        rid = ResourceID.parse("v1/pods")
        assert rid.group == ""
        assert rid.version == "v1"
        assert rid.resource == "pods"

    def test_named_group(self) -> None:
        rid = ResourceID.parse("apps/v1/daemonsets")
        assert (rid.group, rid.version, rid.resource) == ("apps", "v1", "daemonsets")
        assert rid.api_version == "apps/v1"

    def test_resource_is_lowercased(self) -> None:
        assert ResourceID.parse("apps/v1/Deployments").resource == "deployments"

    @pytest.mark.parametrize("bad", ["pods", "a/b/c/d", "v1/", "/pods", ""])
    def test_rejects_malformed(self, bad: str) -> None:
        with pytest.raises(ValueError, match="invalid resource identifier"):
            ResourceID.parse(bad)

    @given(group=_segment, version=_segment, resource=_segment)
    def test_gvr_is_stable_rendering(self, group: str, version: str, resource: str) -> None:
        """Parsing the rendering of a RID yields the same RID."""
        rid = ResourceID(group=group, version=version, resource=resource)
        assert ResourceID.parse(rid.gvr) == rid


# ---------------------------------------------------------------------------
# Object addressing
# ---------------------------------------------------------------------------


class TestAddressing:
    def test_kind_rid_path_is_gvr(self) -> None:
        assert PODS.path == "v1/pods"
        assert str(DEPLOYMENTS) == "apps/v1/deployments"

    def test_with_name_namespaced(self) -> None:
        rid = DEPLOYMENTS.with_name("prod/web")
        assert rid.namespace == "prod"
        assert rid.name == "web"
        assert rid.path == "apps/v1/deployments/prod/web"
        assert str(rid) == "apps/v1/deployments"

    def test_with_name_cluster_scoped(self) -> None:
        rid = ResourceID.parse("v1/nodes").with_name("node-1")
        assert rid.namespace == ""
        assert rid.path == "v1/nodes/node-1"

    def test_kind_id_drops_object(self) -> None:
        assert DEPLOYMENTS.with_name("prod/web").kind_id == DEPLOYMENTS

    def test_rids_are_hashable(self) -> None:
        assert len({PODS, ResourceID.parse("v1/pods"), DEPLOYMENTS}) == 2


class TestFqn:
    def test_fqn_with_namespace(self) -> None:
        assert fqn("default", "nginx") == "default/nginx"

    def test_fqn_cluster_scoped(self) -> None:
        assert fqn("", "node-1") == "node-1"

    def test_split_bare_name(self) -> None:
        assert split_fqn("node-1") == ("", "node-1")

    @given(ns=_segment, name=_segment)
    def test_split_inverts_fqn(self, ns: str, name: str) -> None:
        assert split_fqn(fqn(ns, name)) == (ns, name)

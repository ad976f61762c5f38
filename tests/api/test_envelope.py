"""Tests for ApiResponse envelope and ResponseMeta."""
from smack_builders import __version__
from smack_builders.api.schemas.builds import BuildRequest
from smack_builders.api.schemas.envelope import ApiResponse, ResponseMeta


def test_success_response():
    resp = ApiResponse.success({"key": "value"})
    assert resp.ok is True
    assert resp.data == {"key": "value"}
    assert resp.error is None


def test_fail_response():
    resp = ApiResponse.fail("something broke", warnings=["w1"])
    assert resp.ok is False
    assert resp.error == "something broke"
    assert resp.data is None
    assert resp.meta.warnings == ["w1"]


def test_meta_defaults():
    meta = ResponseMeta()
    assert meta.api_version == __version__
    assert meta.generated_at is not None
    assert meta.warnings == []
    assert meta.elapsed_ms is None


def test_success_meta_kwargs():
    resp = ApiResponse.success([1, 2, 3], elapsed_ms=5.0)
    dumped = resp.model_dump()
    assert dumped["ok"] is True
    assert dumped["data"] == [1, 2, 3]
    assert dumped["meta"]["elapsed_ms"] == 5.0


def test_build_request_merges_shortcuts():
    req = BuildRequest(
        project_ref="p",
        kind="game-scene",
        params={"prompt": "explicit"},
        prompt="shortcut",
        project_root="/srv/p",
    )
    assert req.build_params() == {"prompt": "explicit", "project_root": "/srv/p"}

    req = BuildRequest(project_ref="p", kind="game-scene", prompt="shortcut")
    assert req.build_params() == {"prompt": "shortcut"}

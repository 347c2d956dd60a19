"""Algorithm catalog and policy endpoint tests."""

from fastapi.testclient import TestClient
from profitability_engine.main import app


client = TestClient(app)


def test_algorithms_endpoint():
    """Test algorithms endpoint lists catalog entries with provider keys."""
    response = client.get("/v1/algorithms")
    assert response.status_code == 200

    data = response.json()
    assert isinstance(data, list)
    assert len(data) > 0

    by_key = {entry["key"]: entry for entry in data}
    assert by_key["sha256"]["provider_key"] == "SHA256"
    assert by_key["sha256"]["unit"] == "TH/s"
    assert by_key["ethash"]["provider_key"] == "DAGGERHASHIMOTO"
    assert by_key["randomx"]["provider_key"] == "RANDOMXMONERO"

    for entry in data:
        assert entry["provider_key"] == entry["provider_key"].upper()
        assert entry["provider_key"].isalnum()


def test_assumptions_endpoint():
    """Test assumptions endpoint returns the scoring policy."""
    response = client.get("/v1/assumptions")
    assert response.status_code == 200

    data = response.json()
    assert data["policy_version"] == "2026.10.0"
    assert data["reference_unit_base"] == 1e12
    assert data["reference_coin_key"] == "btc"
    assert data["single_candidate_confidence"] == 55
    assert [step["confidence"] for step in data["margin_steps"]] == [90, 75, 60, 45]
    assert isinstance(data["simplifications"], list)


def test_assumptions_reference_unit_from_env(monkeypatch):
    """PAYOUT_REFERENCE_UNIT_BASE changes the default reference unit."""
    monkeypatch.setenv("PAYOUT_REFERENCE_UNIT_BASE", "1e9")
    data = client.get("/v1/assumptions").json()
    assert data["reference_unit_base"] == 1e9


def test_single_algorithm_endpoint():
    """Test one algorithm can be looked up case-insensitively."""
    response = client.get("/v1/algorithms/KHeavyHash")
    assert response.status_code == 200
    assert response.json()["provider_key"] == "KHEAVYHASH"

    response = client.get("/v1/algorithms/blake3")
    assert response.json()["provider_key"] == "BLAKE3"

    assert client.get("/v1/algorithms/unobtainium").status_code == 404

from __future__ import annotations

import uuid
from datetime import timedelta

from fastapi.testclient import TestClient

from rewards_core.models import RewardStatus

PLAYER = {"X-Discord-Id": "1001"}


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_claim_day_three_is_delivered_end_to_end(
    client: TestClient, make_user, make_claim_history, channel, fetch_reward, fetch_events
) -> None:
    user = make_user()
    make_claim_history(user, day=1, age=timedelta(hours=45))
    make_claim_history(user, day=2, age=timedelta(hours=21))

    response = client.post("/api/v1/rewards/claim", json={"day": 3}, headers=PLAYER)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert "reivindicada com sucesso" in body["message"]
    assert body["day"] == 3
    assert body["claimTime"]
    assert body["nextClaimTime"]
    assert body["vipStatus"] == "none"
    assert body["rewards"] == [{"name": "Stone", "amount": 500, "isVip": False}]

    reward_id = uuid.UUID(body["rewardId"])
    assert channel.calls == [reward_id]
    stored = fetch_reward(reward_id)
    assert stored.status is RewardStatus.PROCESSED
    delivered = fetch_events("reward_delivered")
    assert len(delivered) == 1
    assert delivered[0].data["attempts"] == 1

    pending = client.get("/api/v1/rewards/pending", headers=PLAYER)
    assert pending.status_code == 200
    assert pending.json() == {"success": True, "count": 0, "rewards": []}


def test_claim_succeeds_even_when_delivery_fails(
    client: TestClient, make_user, channel, fetch_reward, sleeps
) -> None:
    make_user()
    channel.fail_always = True

    response = client.post("/api/v1/rewards/claim", json={"day": 1}, headers=PLAYER)

    assert response.status_code == 200
    assert fetch_reward(uuid.UUID(response.json()["rewardId"])).status is RewardStatus.FAILED
    assert sleeps == [2.0, 4.0]


def test_second_claim_inside_cooldown_is_rejected(client: TestClient, make_user) -> None:
    make_user()
    client.post("/api/v1/rewards/claim", json={"day": 1}, headers=PLAYER).raise_for_status()

    response = client.post("/api/v1/rewards/claim", json={"day": 2}, headers=PLAYER)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["canClaim"] is False
    assert body["hoursToWait"] == 20
    assert body["nextClaimTime"]


def test_claim_requires_principal(client: TestClient) -> None:
    response = client.post("/api/v1/rewards/claim", json={"day": 1})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Não autenticado"}


def test_claim_for_unknown_user(client: TestClient) -> None:
    response = client.post("/api/v1/rewards/claim", json={"day": 1}, headers={"X-Discord-Id": "404"})
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_claim_without_steam_id(client: TestClient, make_user) -> None:
    make_user(steam_id=None)
    response = client.post("/api/v1/rewards/claim", json={"day": 1}, headers=PLAYER)
    assert response.status_code == 400
    assert "Steam ID" in response.json()["message"]


def test_claim_with_day_out_of_range(client: TestClient, make_user) -> None:
    make_user()
    response = client.post("/api/v1/rewards/claim", json={"day": 9}, headers=PLAYER)
    assert response.status_code == 400
    assert response.json()["message"].startswith("Dia inválido")


def test_claim_out_of_sequence_is_rejected(client: TestClient, make_user, channel) -> None:
    make_user()

    response = client.post("/api/v1/rewards/claim", json={"day": 7}, headers=PLAYER)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Somente o dia 1 pode ser reivindicado para novos jogadores."
    assert body["nextDay"] == 1
    assert channel.calls == []


def test_claim_with_non_integer_day(client: TestClient, make_user) -> None:
    make_user()
    response = client.post("/api/v1/rewards/claim", json={"day": "3"}, headers=PLAYER)
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert any(error["loc"][-1] == "day" for error in body["detail"])


def test_eligibility_endpoint(client: TestClient, make_user) -> None:
    make_user()

    before = client.get("/api/v1/rewards/eligibility", headers=PLAYER).json()
    assert before["canClaim"] is True
    assert before["hoursToWait"] == 0

    client.post("/api/v1/rewards/claim", json={"day": 1}, headers=PLAYER).raise_for_status()

    after = client.get("/api/v1/rewards/eligibility", headers=PLAYER).json()
    assert after["canClaim"] is False
    assert after["hoursToWait"] == 20
    assert after["lastClaimTime"]


def test_daily_status_endpoint(client: TestClient, make_user) -> None:
    make_user()
    client.post("/api/v1/rewards/claim", json={"day": 1}, headers=PLAYER).raise_for_status()

    response = client.get("/api/v1/rewards/daily", headers=PLAYER)

    assert response.status_code == 200
    body = response.json()
    assert body["consecutiveDays"] == 1
    assert body["claimedDays"] == [1]
    assert body["nextDay"] == 2
    assert body["canClaim"] is False
    assert len(body["rewards"]) == 7
    assert body["rewards"][0]["claimed"] is True
    assert [entry["day"] for entry in body["history"]] == [1]
    assert "vipTier" in body["history"][0]

from __future__ import annotations

from rewards_core.models import RewardStatus
from rewards_core.services.delivery_queue import BackgroundDeliveryQueue, InlineDeliveryQueue


def test_background_queue_delivers_submitted_rewards(rewards_service, make_reward, fetch_reward, channel) -> None:
    rewards = [make_reward(day=day) for day in (1, 2, 3)]
    queue = BackgroundDeliveryQueue(rewards_service, maxsize=10, poll_interval=0.05)
    queue.start()
    try:
        assert all(queue.submit(reward.id) for reward in rewards)
        queue.join()
    finally:
        queue.stop(timeout=2.0)

    assert not queue.running
    assert sorted(str(reward_id) for reward_id in channel.calls) == sorted(str(reward.id) for reward in rewards)
    assert all(fetch_reward(reward.id).status is RewardStatus.PROCESSED for reward in rewards)


def test_full_queue_refuses_new_rewards(rewards_service, make_reward) -> None:
    queue = BackgroundDeliveryQueue(rewards_service, maxsize=1)

    assert queue.submit(make_reward().id) is True
    assert queue.submit(make_reward().id) is False
    assert queue.pending == 1


def test_stopped_queue_refuses_new_rewards(rewards_service, make_reward) -> None:
    queue = BackgroundDeliveryQueue(rewards_service, poll_interval=0.05)
    queue.start()
    queue.stop(timeout=2.0)

    assert queue.submit(make_reward().id) is False


def test_recover_backlog_enqueues_pending_rewards(rewards_service, make_reward) -> None:
    make_reward()
    make_reward()
    make_reward(status=RewardStatus.PROCESSED)
    make_reward(status=RewardStatus.FAILED)
    queue = BackgroundDeliveryQueue(rewards_service)

    assert queue.recover_backlog() == 2
    assert queue.pending == 2


def test_inline_queue_isolates_delivery_errors(make_reward) -> None:
    class ExplodingRewards:
        def deliver_by_id(self, reward_id):
            raise RuntimeError("boom")

    queue = InlineDeliveryQueue(ExplodingRewards())  # type: ignore[arg-type]

    assert queue.submit(make_reward().id) is True

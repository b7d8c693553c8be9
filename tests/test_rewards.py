import math
import unittest

from dogdog.models import Checkpoint, PowerUpType, RewardBundle
from dogdog.policy.rewards import BASE_REWARDS, RewardTable


class RewardTableTests(unittest.TestCase):
    def setUp(self) -> None:
        self.table = RewardTable()

    def test_rewards_non_decreasing_along_path(self) -> None:
        order = list(Checkpoint)
        for acc in (0.0, 0.5, 0.8, 1.0):
            for earlier, later in zip(order, order[1:]):
                a = self.table.rewards_for(earlier, acc)
                b = self.table.rewards_for(later, acc)
                for t in PowerUpType:
                    self.assertGreaterEqual(b[t], a[t], f"{t.value} drops from {earlier.value} to {later.value}")

    def test_introduced_power_up_never_returns_to_zero(self) -> None:
        for t in PowerUpType:
            seen = False
            for cp in Checkpoint:
                count = BASE_REWARDS[cp][t]
                if seen:
                    self.assertGreater(count, 0)
                seen = seen or count > 0

    def test_final_checkpoint_has_every_type(self) -> None:
        for final in (Checkpoint.GREAT_DANE, Checkpoint.DEUTSCHE_DOGGE):
            bundle = self.table.rewards_for(final, 0.0)
            for t in PowerUpType:
                self.assertGreater(bundle[t], 0)

    def test_bonus_is_binary(self) -> None:
        for cp in Checkpoint:
            high = self.table.rewards_for(cp, 0.8)
            low = self.table.rewards_for(cp, 0.7)
            top = self.table.rewards_for(cp, 0.95)
            for t in PowerUpType:
                self.assertEqual(high[t], low[t] + 1)
                self.assertEqual(top[t], high[t])

    def test_accuracy_is_clamped(self) -> None:
        cp = Checkpoint.PUG
        self.assertEqual(self.table.rewards_for(cp, 1.7), self.table.rewards_for(cp, 1.0))
        self.assertEqual(self.table.rewards_for(cp, -3), self.table.base_rewards(cp))
        self.assertEqual(self.table.rewards_for(cp, math.nan), self.table.base_rewards(cp))

    def test_totals_and_preview(self) -> None:
        cp = Checkpoint.CHIHUAHUA
        self.assertEqual(self.table.total_reward_count(cp, 0.0), 5)
        self.assertEqual(self.table.total_reward_count(cp, 0.9), 10)
        preview = self.table.preview_bundles(cp)
        self.assertEqual(preview["base"], BASE_REWARDS[cp])
        self.assertEqual(preview["bonus"], RewardBundle.uniform(1))

    def test_validate_distribution(self) -> None:
        self.assertTrue(self.table.validate_distribution())
        # reversed order breaks monotonicity
        self.assertFalse(self.table.validate_distribution(list(reversed(list(Checkpoint)))))
        # a path ending at chihuahua lacks skip and secondChance
        self.assertFalse(self.table.validate_distribution([Checkpoint.CHIHUAHUA]))

    def test_from_config_threshold(self) -> None:
        table = RewardTable.from_config({"rewards": {"bonus_accuracy_threshold": 0.5}})
        self.assertTrue(table.bonus_rewards(0.6).total > 0)
        self.assertTrue(RewardTable.from_config({}).bonus_rewards(0.6).is_empty)


class RewardBundleTests(unittest.TestCase):
    def test_always_lists_every_type(self) -> None:
        bundle = RewardBundle({PowerUpType.HINT: 2})
        self.assertEqual(len(bundle), len(PowerUpType))
        self.assertEqual(bundle[PowerUpType.SKIP], 0)
        self.assertEqual(bundle.total, 2)

    def test_rejects_negative_counts(self) -> None:
        with self.assertRaises(ValueError):
            RewardBundle({PowerUpType.HINT: -1})

    def test_addition_and_json(self) -> None:
        total = RewardBundle.uniform(1) + {PowerUpType.HINT: 2}
        self.assertEqual(total[PowerUpType.HINT], 3)
        self.assertEqual(RewardBundle.from_json(total.to_json()), total)
        self.assertEqual(RewardBundle.from_json({"PowerUpType.skip": 4})[PowerUpType.SKIP], 4)


if __name__ == "__main__":
    unittest.main()

"""TAUMine - pioneer registration, referral rewards and leaderboard."""

__version__ = "1.0.0"

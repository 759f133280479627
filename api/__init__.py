"""HTTP surface for replyguard."""

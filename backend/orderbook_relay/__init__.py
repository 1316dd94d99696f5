"""Order book relay: periodic exchange snapshots fanned out to WebSocket subscribers."""

"""Streak engine: activity recording, streak calculation and achievements."""

"""Adaptive memory scoring, relationship progress and tiered memory retrieval."""

"""Application layer: engines, task queue and workers."""

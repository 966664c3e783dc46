"""Core discovery engine: signals, graphs, fit scoring and ranking."""

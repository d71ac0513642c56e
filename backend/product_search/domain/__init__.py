"""Domain layer - ports, models and errors (no infrastructure imports)"""

"""Domain layer: framework-free rules of the thesis workflow."""

"""
cnstack - Platform recipe resolution and deployment bundle generation.

Resolves a platform query (OS, kernel, managed service, Kubernetes version,
accelerator, workload intent) into a recipe of measurements, then fans the
recipe out to registered bundler plugins.

    Query → RecipeBuilder (reads Store) → Recipe → BundlerOrchestrator → Output
"""

__version__ = "0.1.0"

"""
Orchext - Universal Orchestrator extension installer

Installs and maintains a local directory of orchestrator extensions
published as GitHub release assets.

Quick Start:
    pip install -e .
    orchext ext -e iis-orchestrator@2.2.2 -o ./extensions -y
"""

__version__ = "0.3.0"

__all__ = ["__version__"]

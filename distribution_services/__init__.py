"""
distribution_services -- public API of the distribution engine.

Dependency direction (enforced by tests/architecture/test_kernel_boundary.py):
    distribution_services/ -> distribution_kernel/  (allowed)
    distribution_services/ -> distribution_config/  (allowed)
    distribution_kernel/   -> distribution_services/ (FORBIDDEN)
    distribution_kernel/   -> distribution_config/   (FORBIDDEN)
"""

from distribution_services.engine import DistributionEngine

__all__ = ["DistributionEngine"]

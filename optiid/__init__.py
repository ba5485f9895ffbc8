"""OptiId registry service: signed label allocation and a permissioned name registry."""

__version__ = "1.0.0"

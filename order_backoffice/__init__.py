"""
Order back office: order lifecycle, pricing and profit derivation.
"""

__version__ = "0.3.0"

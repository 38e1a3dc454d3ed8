"""Library circulation.

Loans, book stock, tenant settings and loan notifications.
"""

__version__ = "0.1.0"

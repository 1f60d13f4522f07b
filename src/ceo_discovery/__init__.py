"""
CEO discovery: behavioral pattern mining, Becoin treasury and outcome learning.

Subpackages:
    discovery - patterns -> pain points -> proposals -> forecasts
    treasury  - balance, reservations and transactions
    learning  - feedback, estimator training, improvement scheduling, analytics
"""

__version__ = "0.1.0"

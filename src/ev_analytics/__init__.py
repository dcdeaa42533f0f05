"""
EV Fleet Analytics
Analytical queries, rollups and window-function reports over an electric
vehicle fleet dataset.
"""

__version__ = "1.0.0"

"""
Network Monitor

A Python package for discovering and classifying hosts on a local network
and continuously monitoring their availability and response times, with
threshold-based alerting.
"""

__version__ = "1.0.0"
__author__ = "Network Monitor Team"

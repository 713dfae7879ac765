"""
Bakehouse Ops: order intake, bake-slot capacity and prep-sheet production tracking.
"""

__version__ = "0.3.0"

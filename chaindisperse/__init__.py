"""
chaindisperse - batched native coin and ERC-20 transfers through a disperse contract.
"""

__version__ = "0.1.0"

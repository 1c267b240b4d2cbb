"""Cycle-counting RV32I processor simulator with instruction and data caches."""

__version__ = "0.1.0"
__all__ = ["cli", "cpu", "decoder", "executor", "hostmsg", "instruction", "memory", "regfile"]
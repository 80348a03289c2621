"""
EpochLedger - Command Line Interface
"""

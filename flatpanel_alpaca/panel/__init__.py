"""
Flat panel device state and the polling state machine.
"""

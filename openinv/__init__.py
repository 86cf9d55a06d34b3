"""Inverter and vehicle-controller building blocks: fixed-point math, CRC-8, U/f curve, analog input filtering, FOC helpers, LIN framing, error memory, CAN mapping, SDO and OBD-II."""

__version__ = "0.1.0"
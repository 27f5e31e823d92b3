"""Shipments module.

Raw source: getShipmentItems on the script endpoint.

Processes:
- Branch / tracking browsing and tracking number updates → shipment_tracking.py
"""

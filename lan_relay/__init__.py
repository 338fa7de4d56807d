"""
                Restaurant LAN Relay

Always-on local-network service for the restaurant floor: stores the
floor plan and customer orders, and relays live order events to every
connected POS terminal.
"""

__version__ = "1.0.0"

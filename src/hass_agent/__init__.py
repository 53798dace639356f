"""Home Assistant MQTT discovery agent.

Keeps an MQTT session alive and lets device implementations announce
themselves, publish state, and receive commands.
"""

__version__ = "0.3.0"

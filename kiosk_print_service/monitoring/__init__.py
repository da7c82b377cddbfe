"""
Kiosk Print Service Monitoring
==============================

Zabbix-compatible passive-check agent.
"""

from .agent import MonitoringAgent, AgentConfig, AgentState, check_address_filter
from .checks import Check, CheckRegistry, BUILTIN_CHECKS
from .protocol import HeaderFlag, WireHeader, build_header, parse_header, build_packet

__all__ = [
    'MonitoringAgent', 'AgentConfig', 'AgentState', 'check_address_filter',
    'Check', 'CheckRegistry', 'BUILTIN_CHECKS',
    'HeaderFlag', 'WireHeader', 'build_header', 'parse_header', 'build_packet',
]

"""
Kiosk Print Service
===================

Print dispatch and monitoring service for check-in kiosks.

Supports:
- Zebra/ZPL label printers over TCP (raw port 9100)
- USB printer-class devices (via PyUSB bulk transfers)
- Zabbix-compatible passive checks (monitoring agent)

Usage:
    python -m kiosk_print_service

API Endpoints:
    GET  /health                  - Health check
    GET  /api                     - Service info
    POST /api/print               - Fetch, merge and print labels
    GET  /api/printers/discover   - Attached printers
    GET  /api/settings            - Print settings in effect
"""

__version__ = '1.0.0'
__author__ = 'EGS Software AG'

"""
Kiosk Print Service Configuration
"""

import os
import socket

# =============================================================================
# Server Configuration
# =============================================================================

PORT = int(os.environ.get('KIOSK_PRINT_PORT', 5100))
HOST = os.environ.get('KIOSK_PRINT_HOST', '0.0.0.0')
DEBUG = os.environ.get('KIOSK_PRINT_DEBUG', 'false').lower() == 'true'

# API Key for authentication
API_KEY = os.environ.get('KIOSK_PRINT_API_KEY', 'kiosk-print-2026')

# =============================================================================
# Printer Defaults
# =============================================================================

DEFAULT_TIMEOUT = 30  # seconds

# ZPL/Network printer default port
ZPL_PORT = 9100

# USB printer device class (bInterfaceClass 0x07)
USB_PRINTER_CLASS = 7
USB_TRANSFER_TIMEOUT_MS = 10000

LABEL_FETCH_TIMEOUT = int(os.environ.get('KIOSK_LABEL_FETCH_TIMEOUT', 15))  # seconds

# Upper bound for one HTTP print or discovery request
PRINT_REQUEST_TIMEOUT = int(os.environ.get('KIOSK_PRINT_REQUEST_TIMEOUT', 120))  # seconds

# =============================================================================
# Kiosk Settings (defaults for the settings collaborator)
# =============================================================================

PRINTER_OVERRIDE = os.environ.get('KIOSK_PRINTER_OVERRIDE') or None
ENABLE_LABEL_CACHING = os.environ.get('KIOSK_ENABLE_LABEL_CACHING', 'true').lower() == 'true'
CACHE_DURATION = int(os.environ.get('KIOSK_CACHE_DURATION', 1800))  # seconds

# =============================================================================
# Monitoring Agent
# =============================================================================

AGENT_HOSTNAME = os.environ.get('KIOSK_AGENT_HOSTNAME', socket.gethostname())
AGENT_LISTEN_ADDRESS = os.environ.get('KIOSK_AGENT_LISTEN_ADDRESS', '0.0.0.0')
AGENT_LISTEN_PORT = int(os.environ.get('KIOSK_AGENT_LISTEN_PORT', 10050))

# Servers allowed to poll passive checks; empty disables the agent
AGENT_PASSIVE_SERVERS = [
    s.strip() for s in os.environ.get('KIOSK_AGENT_PASSIVE_SERVERS', '').split(',') if s.strip()
]

# =============================================================================
# Storage Configuration
# =============================================================================

# Where to store cached label data (local file-based for standalone)
DATA_DIR = os.environ.get('KIOSK_PRINT_DATA_DIR', os.path.expanduser('~/.kiosk_print_service'))

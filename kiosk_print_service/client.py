"""
Kiosk Print Service Client
==========================

Python SDK for interacting with the Kiosk Print Service.

Usage:
    from kiosk_print_service.client import PrintClient

    client = PrintClient('http://localhost:5100', api_key='your-key')

    # Print check-in labels
    result = client.print_labels([
        {'LabelKey': 'name-tag', 'LabelFile': 'https://.../label.zpl',
         'PrinterAddress': '192.168.1.50', 'MergeFields': {'NAME': 'Ada'}},
    ])

    # Attached printers
    printers = client.discover()
"""

import requests
from typing import Dict, Any, List


class PrintClient:
    """Client for the Kiosk Print Service."""

    def __init__(self, base_url: str = 'http://localhost:5100', api_key: str = None):
        """
        Initialize client.

        Args:
            base_url: Base URL of the print service
            api_key: API key for authentication
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        """Get request headers."""
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        return headers

    def _request(self, method: str, endpoint: str, data: Dict = None) -> Dict[str, Any]:
        """Make API request."""
        url = f'{self.base_url}{endpoint}'

        try:
            if method == 'GET':
                response = requests.get(url, headers=self._headers(), timeout=30)
            elif method == 'POST':
                response = requests.post(url, json=data, headers=self._headers(), timeout=120)
            else:
                raise ValueError(f'Unknown method: {method}')

            return response.json()

        except requests.exceptions.Timeout:
            return {'success': False, 'error': 'Request timeout'}
        except requests.exceptions.ConnectionError:
            return {'success': False, 'error': f'Cannot connect to {self.base_url}'}
        except ValueError as e:
            return {'success': False, 'error': str(e)}

    # =========================================================================
    # Health
    # =========================================================================

    def health(self) -> Dict[str, Any]:
        """Check service health."""
        return self._request('GET', '/health')

    def is_online(self) -> bool:
        """Check if service is online."""
        result = self.health()
        return result.get('status') == 'online'

    # =========================================================================
    # Printing
    # =========================================================================

    def print_labels(self, labels: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Print a batch of labels.

        Args:
            labels: Label descriptors as sent by the check-in API
                (LabelKey, LabelFile, PrinterAddress, MergeFields, ...)
        """
        return self._request('POST', '/api/print', {'labels': labels})

    def discover(self) -> List[Dict[str, Any]]:
        """Printers attached to the kiosk."""
        result = self._request('GET', '/api/printers/discover')
        return result.get('discovered', [])

    def get_settings(self) -> Dict[str, Any]:
        """Print settings in effect."""
        result = self._request('GET', '/api/settings')
        return result.get('settings', {})

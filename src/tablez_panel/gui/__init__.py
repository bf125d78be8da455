"""
Tablez Panel GUI - Live status and configuration editor

Install dependencies:
    pip install .[gui]

Run:
    tablez-panel gui
"""

from .app import TablezPanelApp

__all__ = ['TablezPanelApp']

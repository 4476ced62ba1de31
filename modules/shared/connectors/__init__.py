"""Connectors - Quell- und Zielsystem-Schnittstellen"""

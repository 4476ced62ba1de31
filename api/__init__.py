"""API - FastAPI Kommando-Schicht"""

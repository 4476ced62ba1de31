"""
Modules Package - Alle Anwendungsmodule

- shared: Gemeinsame Infrastruktur (Database, Logging, Connectors, Fehler)
- jtl_sync: Joomla/VirtueMart → JTL Synchronisation (Shops, Mapping, Runner, Statistik)

Verwendung:
    from modules.shared import create_module_logger, log_service
    from modules.jtl_sync.services.sync_runner import SyncRunner
"""

__version__ = "2.0.0"

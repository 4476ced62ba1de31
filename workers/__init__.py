"""Workers - Geplante Sync-Jobs (Store, Zeitplan, Scheduler)"""

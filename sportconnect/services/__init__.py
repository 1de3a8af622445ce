# Services package init
"""
SportConnect Backend — Services Layer
=====================================

Service Inventory:
    - GeoAffinityScorer (scorer.py): pure ranking by distance + skill similarity
    - OptimisticToggleReconciler (reconciler.py): optimistic like/follow with rollback
    - ToggleStore (store_base.py): abstract atomic toggle port
        - SqlToggleStore (sql_store.py): SQLAlchemy transaction with row locks
        - HttpToggleStore (http_store.py): calls a running SportConnect service
    - FeedService, PostService, ProfileService: per-request orchestration
    - GeocodingService: reverse/forward geocoding with retry + circuit breaker

Services never see HTTP objects; routes never see SQL.
"""

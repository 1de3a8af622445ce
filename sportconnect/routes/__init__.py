# Routes package init
"""
SportConnect Backend — API Routes Package
=========================================

Route Inventory:
    - feed.py:     GET  /api/feed/recommended, /api/feed/recent,
                        /api/feed/following, /api/users/{id}/liked-posts
    - posts.py:    POST /api/posts, GET /api/posts/{id},
                   POST /api/posts/{id}/like, GET/POST /api/posts/{id}/comments
    - users.py:    /api/users/search, /api/users/{id} (GET, PUT),
                   PATCH bio/settings, POST locate/follow, GET followers/following
    - geocode.py:  GET  /api/geocode/search
    - health.py:   GET  /health

Routes stay thin: parse the request, call one service method, return its
result. Errors propagate to the handlers registered in main.py.
"""

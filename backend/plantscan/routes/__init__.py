# Routes package init
"""
PlantScan Backend - API Routes Package
========================================

Route Inventory:
    - scan.py:    POST   /scan            (QR payload → record)
    - images.py:  POST   /upload          (attach photo)
                  DELETE /delete-image    (detach photo)
                  GET    /uploads/{name}  (serve photo)
    - health.py:  GET    /                (greeting)
                  GET    /health          (service health check)

Routes stay thin: decode the request, call InventoryService, shape the
response. Errors propagate to the handlers registered in main.py.
"""

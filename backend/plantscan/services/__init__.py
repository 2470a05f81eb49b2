# Services package init
"""
PlantScan Backend - Services Layer
====================================

What:  Business logic between routes (HTTP) and the database.

Service Inventory:
    - ScanParser:       QR payload → (group_id, plant_id)
    - image_links:      ImageLinks append/remove (LinkSet)
    - InventoryStore:   PlantList queries and conditional writes
    - FileService:      photo storage under the upload directory
    - InventoryService: scan / attach / detach workflows
"""

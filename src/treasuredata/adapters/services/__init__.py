"""One service per API resource family; attached to `TreasureDataClient`."""

"""Fixed assets: register, disposal and the depreciation batch."""

"""DecalStudio — layer texture pipeline for garment decals."""

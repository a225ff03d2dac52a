from cabinstay.modules.cabins.catalog import CabinCatalog

__all__ = ["CabinCatalog"]

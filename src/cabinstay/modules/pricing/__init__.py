from cabinstay.modules.pricing.engine import PriceQuote, PricingEngine

__all__ = ["PriceQuote", "PricingEngine"]

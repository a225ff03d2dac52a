from cabinstay.modules.promotions.codes import (
    PromoCodeAdmin,
    PromoCodeValidator,
    PromoRejection,
    PromoValidation,
    PublicPromo,
)

__all__ = [
    "PromoCodeAdmin",
    "PromoCodeValidator",
    "PromoRejection",
    "PromoValidation",
    "PublicPromo",
]

from typing import Iterable, List


def is_low_stock(product) -> bool:
    return product.quantity <= product.min_stock


def low_stock_products(products: Iterable) -> List:
    """Products at or below their minimum stock, largest shortage first."""
    low = [p for p in products if is_low_stock(p)]
    return sorted(low, key=lambda p: p.min_stock - p.quantity, reverse=True)

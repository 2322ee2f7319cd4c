"""Error kinds raised by the costing and settlement engine.

Every fault is a distinct subclass of ``CatalogError`` so callers can tell them
apart. None of them is retried internally.
"""


class CatalogError(Exception):
    """Base class for catalog and checkout faults."""


class ItemNotFoundError(CatalogError, KeyError):
    """Lookup of an item (or ingredient, category) id that does not exist."""

    def __init__(self, item_id, kind: str = "Item"):
        self.item_id = item_id
        self.kind = kind
        super().__init__(f"{kind} {item_id!r} not found")

    def __str__(self) -> str:
        return self.args[0]


class DataIntegrityError(CatalogError):
    """The catalog references a missing item/ingredient or holds invalid rows."""

    def __init__(self, faults):
        self.faults = list(faults)
        details = "; ".join(str(f) for f in self.faults) or "unknown fault"
        super().__init__(f"Catalog data-integrity fault: {details}")


class CompositionInvariantError(CatalogError):
    """A bundle component is itself a bundle."""

    def __init__(self, bundle_id, component_id):
        self.bundle_id = bundle_id
        self.component_id = component_id
        super().__init__(
            f"Bundle {bundle_id!r} contains composite item {component_id!r}; bundles may not be nested"
        )


class CheckoutIntegrityError(CatalogError):
    """The cart references items the catalog does not know."""

    def __init__(self, unknown_item_ids):
        self.unknown_item_ids = list(unknown_item_ids)
        ids = ", ".join(repr(i) for i in self.unknown_item_ids)
        super().__init__(f"Cart references unknown items: {ids}")


class PartialSettlementError(CatalogError):
    """Some leaf decrements failed after planning succeeded.

    ``outcome`` is the ``SettlementOutcome`` listing the targets that were
    decremented and the ones that were not. Applied targets are not rolled back.
    """

    def __init__(self, outcome):
        self.outcome = outcome
        failed = ", ".join(str(f.target) for f in outcome.failed_targets)
        super().__init__(f"Checkout partially settled; failed targets: {failed}")

    @property
    def applied_targets(self):
        return self.outcome.applied_targets

    @property
    def failed_targets(self):
        return self.outcome.failed_targets

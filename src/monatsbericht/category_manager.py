"""
Category management and transaction classification.
"""

import json
import logging
import re
from collections.abc import Iterable, Sequence
from pathlib import Path

from .models import (
    MISC_CATEGORY,
    MISC_DISPLAY_NAME,
    Category,
    Classification,
    ClassifiedEntry,
    Transaction,
    compile_keywords,
)

logger = logging.getLogger(__name__)


class FileLoadingError(Exception):
    """Exception raised when a file cannot be loaded."""


class FileSavingError(Exception):
    """Exception raised when a file cannot be saved."""


class CategoryConfigError(Exception):
    """Exception raised when the category configuration is invalid."""


def classify_transaction(
    transaction: Transaction,
    exclusion_patterns: Sequence[re.Pattern],
    categories: Sequence[Category],
) -> Classification | None:
    """
    Classify a single transaction.

    Only expenses are classified. Exclusions are checked before any category,
    then categories in their configured order; the first hit wins.

    Returns:
        The classification, or None if the transaction is not an expense
    """
    if transaction.amount >= 0:
        return None

    recipient = transaction.recipient
    if any(pattern.search(recipient) for pattern in exclusion_patterns):
        return Classification.excluded()

    for category in categories:
        if category.matches(recipient):
            return Classification.of(category.name)

    return Classification.misc()


def _validate_keywords(owner: str, keywords: list[str]) -> None:
    if not isinstance(keywords, list):
        raise CategoryConfigError(f"Keywords of {owner} must be a list, got {keywords!r}")

    for keyword in keywords:
        if not isinstance(keyword, str):
            raise CategoryConfigError(
                f"Invalid keyword {keyword!r} in {owner}: keywords must be strings",
            )
        try:
            re.compile(keyword)
        except re.error as e:
            raise CategoryConfigError(
                f"Invalid keyword {keyword!r} in {owner}: {e}",
            ) from e


class CategoryManager:
    """Manages categories, exclusions and their keyword patterns."""

    def __init__(self, category_file: Path):
        self.categories: dict[str, Category] = {}
        self.exclusions: list[str] = []
        self.category_file = category_file

        if category_file.exists():
            logger.info(f"Loading categories from {category_file}")
            self.load_categories()
            logger.info(
                f"Loaded {len(self.categories)} categories and {len(self.exclusions)} exclusions",
            )
        else:
            logger.debug(
                f"Category config file {category_file} does not exist, will be created on first save",
            )

    @property
    def exclusion_patterns(self) -> list[re.Pattern]:
        return compile_keywords(self.exclusions)

    def add_category(self, category: Category) -> None:
        """Add a new category, appended after the existing ones."""
        if category.name == MISC_CATEGORY:
            raise CategoryConfigError(
                f"'{MISC_CATEGORY}' is the catch-all category and cannot be configured",
            )
        _validate_keywords(f"category '{category.name}'", category.keywords)

        if category.name in self.categories:
            logger.warning(f"Category '{category.name}' already exists, overwriting")
        else:
            logger.info(f"Adding new category '{category.name}'")
        self.categories[category.name] = category

        # Auto-save
        try:
            self.save_categories()
        except FileSavingError as e:
            logger.warning(
                f"Failed to auto-save categories after adding '{category.name}': {e}. "
                f"Please save manually using save_categories().",
            )

    def remove_category(self, name: str) -> None:
        """Remove a category."""
        if name not in self.categories:
            logger.warning(f"Category '{name}' does not exist, cannot remove")
            return

        logger.info(f"Removing category '{name}'")
        del self.categories[name]
        self.save_categories()

    def get_category(self, name: str) -> Category | None:
        """Get a category by name."""
        return self.categories.get(name)

    def list_categories(self) -> list[Category]:
        """Get all categories in matching order."""
        return list(self.categories.values())

    def display_name(self, name: str) -> str:
        """Display name for a category id, including the catch-all."""
        if name == MISC_CATEGORY:
            return MISC_DISPLAY_NAME
        category = self.categories.get(name)
        return category.display_name if category else name

    def add_keyword(self, category_name: str, keyword: str) -> None:
        """Add a keyword to a category."""
        if category_name not in self.categories:
            logger.warning(
                f"Category '{category_name}' does not exist. Cannot add keyword '{keyword}'. "
                f"Available categories: {list(self.categories.keys())}",
            )
            return

        category = self.categories[category_name]
        if keyword in category.keywords:
            logger.debug(
                f"Keyword '{keyword}' already exists in category '{category_name}'",
            )
            return

        _validate_keywords(f"category '{category_name}'", [keyword])
        category.keywords.append(keyword)
        category.invalidate()
        logger.info(f"Added keyword '{keyword}' to category '{category_name}'")
        self.save_categories()

    def remove_keyword(self, category_name: str, keyword: str) -> None:
        """Remove a keyword from a category."""
        if category_name not in self.categories:
            logger.warning(
                f"Category '{category_name}' does not exist. Cannot remove keyword '{keyword}'. "
                f"Available categories: {list(self.categories.keys())}",
            )
            return

        category = self.categories[category_name]
        if keyword not in category.keywords:
            logger.warning(
                f"Keyword '{keyword}' does not exist in category '{category_name}'. "
                f"Available keywords: {category.keywords}",
            )
            return

        category.keywords.remove(keyword)
        category.invalidate()
        logger.info(f"Removed keyword '{keyword}' from category '{category_name}'")
        self.save_categories()

    def add_exclusion(self, keyword: str) -> None:
        """Add a pattern for counterparties that never count as expenses."""
        if keyword in self.exclusions:
            logger.debug(f"Exclusion '{keyword}' already exists")
            return

        _validate_keywords("exclusions", [keyword])
        self.exclusions.append(keyword)
        logger.info(f"Added exclusion '{keyword}'")
        self.save_categories()

    def remove_exclusion(self, keyword: str) -> None:
        """Remove an exclusion pattern."""
        if keyword not in self.exclusions:
            logger.warning(
                f"Exclusion '{keyword}' does not exist. Available exclusions: {self.exclusions}",
            )
            return

        self.exclusions.remove(keyword)
        logger.info(f"Removed exclusion '{keyword}'")
        self.save_categories()

    def classify(self, transaction: Transaction) -> Classification | None:
        """Classify a transaction with the configured categories and exclusions."""
        return classify_transaction(
            transaction,
            self.exclusion_patterns,
            self.list_categories(),
        )

    def classify_entries(self, transactions: Iterable[Transaction]) -> list[ClassifiedEntry]:
        """Classify transactions in order, dropping those that are not expenses."""
        exclusion_patterns = self.exclusion_patterns
        categories = self.list_categories()
        entries = []
        for transaction in transactions:
            classification = classify_transaction(transaction, exclusion_patterns, categories)
            if classification is not None:
                entries.append(ClassifiedEntry(transaction, classification))
        return entries

    def save_categories(self) -> None:
        """Save categories and exclusions to JSON file."""
        logger.info(f"Saving {len(self.categories)} categories to {self.category_file}")
        data = {
            "categories": {
                name: {
                    "display_name": category.display_name,
                    "keywords": category.keywords,
                }
                for name, category in self.categories.items()
            },
            "exclusions": self.exclusions,
        }

        try:
            self.category_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.category_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            logger.info(f"Successfully saved categories to {self.category_file}")
        except OSError as e:
            logger.error(f"Failed to save categories to {self.category_file}: {e}")
            raise FileSavingError(
                f"Failed to save categories to {self.category_file}: {e}",
            ) from e

    def load_categories(self) -> None:
        """Load categories and exclusions from JSON file."""
        try:
            with open(self.category_file, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in category file {self.category_file}: {e}")
            raise CategoryConfigError(
                f"Invalid JSON in category file {self.category_file}: {e}",
            ) from e
        except OSError as e:
            logger.error(f"Failed to load categories from {self.category_file}: {e}")
            raise FileLoadingError(
                f"Failed to load categories from {self.category_file}: {e}",
            ) from e

        if not isinstance(data, dict):
            raise CategoryConfigError(
                f"Category file {self.category_file} must contain a JSON object",
            )

        category_entries = data.get("categories", {})
        if not isinstance(category_entries, dict):
            raise CategoryConfigError(
                f"'categories' in {self.category_file} must be a JSON object",
            )

        categories = {}
        for name, category_data in category_entries.items():
            if name == MISC_CATEGORY:
                raise CategoryConfigError(
                    f"'{MISC_CATEGORY}' is the catch-all category and cannot be configured",
                )
            if not isinstance(category_data, dict):
                raise CategoryConfigError(
                    f"Category '{name}' in {self.category_file} must be a JSON object",
                )
            keywords = category_data.get("keywords", [])
            _validate_keywords(f"category '{name}'", keywords)
            categories[name] = Category(
                name=name,
                display_name=category_data.get("display_name", name),
                keywords=list(keywords),
            )

        exclusions = data.get("exclusions", [])
        _validate_keywords("exclusions", exclusions)
        exclusions = list(exclusions)

        self.categories = categories
        self.exclusions = exclusions
        logger.debug(
            f"Loaded {len(self.categories)} categories from {self.category_file}",
        )

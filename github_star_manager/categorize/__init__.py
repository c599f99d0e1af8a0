from .categories import CATEGORIES
from .categorize import categorize, render_awesome_list, render_category, write_category_lists

__all__ = ["CATEGORIES", "categorize", "render_awesome_list", "render_category", "write_category_lists"]

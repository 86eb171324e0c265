from .auth import User
from .catalog import Category, Ingredient, IngredientHistory, Product, RecipeItem
from .customers import Customer, TabSettlement
from .sales import Transaction, TransactionItem

__all__ = [
    'User',
    'Category', 'Ingredient', 'IngredientHistory', 'Product', 'RecipeItem',
    'Customer', 'TabSettlement',
    'Transaction', 'TransactionItem',
]

"""Abstract base class for all recommender implementations."""

from abc import ABC, abstractmethod
from typing import Optional
import pandas as pd


class RecommenderBase(ABC):
    """Base class defining the interface shared by the recommenders.

    Attributes:
        name (str): Identifier for the recommender.
        is_trained (bool): Flag indicating if model has been trained.
        row_ids (list): Identifiers of the matrix rows the model was trained on.
        item_ids (list): Identifiers of the matrix columns or items.
    """

    def __init__(self, name: Optional[str] = None):
        """Initialize the recommender with optional name.

        Args:
            name: Optional identifier for the recommender. Defaults to class name if not provided.
        """
        self.name = name or self.__class__.__name__
        self.is_trained = False
        self.row_ids = None
        self.item_ids = None

    @abstractmethod
    def train(self, matrix: pd.DataFrame, *args, **kwargs) -> None:
        """Train the recommendation model on a labelled matrix.

        Args:
            matrix: DataFrame indexed by row identifiers with one column per item
            *args: Additional positional arguments for model training
            **kwargs: Additional keyword arguments for model training
        """
        self.row_ids = matrix.index.tolist()
        self.item_ids = matrix.columns.tolist()

    def _check_trained(self) -> None:
        """Raise ValueError if the recommender has not been trained."""
        if not self.is_trained:
            raise ValueError(f"Recommender '{self.name}' is not trained")

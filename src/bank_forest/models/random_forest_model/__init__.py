from .model_trainer import ModelTrainer

__all__ = ["ModelTrainer"]

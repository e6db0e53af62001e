from .contact_normalizer import ContactNormalizer, NormalizedContact

__all__ = ['ContactNormalizer', 'NormalizedContact']

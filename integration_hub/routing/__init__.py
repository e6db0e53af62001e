from .trigger_evaluator import check_keywords, evaluate_triggers
from .routing_engine import RoutingDecision, RoutingEngine

__all__ = ['check_keywords', 'evaluate_triggers', 'RoutingDecision', 'RoutingEngine']

"""Neurons, layers and the strategy registries they are built from."""

from brain.nn.activation import ACTIVATIONS, Activation, ActivationType, get_activation
from brain.nn.arena import SignalArena
from brain.nn.cost import COSTS, Cost, CostType, get_cost
from brain.nn.layer import Layer
from brain.nn.learning import LEARNING_RULES, LearningConfig, LearningType
from brain.nn.neuron import Neuron

__all__ = [
    "ACTIVATIONS",
    "Activation",
    "ActivationType",
    "get_activation",
    "SignalArena",
    "COSTS",
    "Cost",
    "CostType",
    "get_cost",
    "Layer",
    "LEARNING_RULES",
    "LearningConfig",
    "LearningType",
    "Neuron",
]

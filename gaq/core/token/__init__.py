"""Fungible token collaborator"""
from gaq.core.token.erc20 import ERC20Token

__all__ = ["ERC20Token"]

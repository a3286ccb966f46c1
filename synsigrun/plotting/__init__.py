"""
synsigrun plotting API.
"""
from ._muts import signature_barplot
from ._muts import stacked_bar

from ._cosine import cosine_similarity_plot

"""
plz_show.viz — Optional Plotly preview (install the 'viz' extra).

Modules:
    plotly_graph — Positions, edges and package hulls as a Plotly figure.
"""

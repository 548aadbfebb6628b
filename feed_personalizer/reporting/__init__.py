"""
CLI reporting: ASCII tables for selections and interest weights.

Modules
-------
formatters : format_selected_items() + format_selection_table()
             + format_weights_table().
"""

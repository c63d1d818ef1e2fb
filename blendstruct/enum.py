from enum import Flag


class Compliant(Flag):
    '''It indicates which degree of compliantness the data must reflect the format'''
    NONE    = 0
    ENUM    = 1 << 0  # values outside of an enum are errors instead of warnings
    INHERIT = 1 << 1
    TYPES   = 1 << 2  # a struct failing the analysis aborts the whole schema

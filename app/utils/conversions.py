# app/utils/conversions.py
"""Field-unit conversions used at the edges of the engine (everything inside is SI)."""

FANN_DIAL_TO_PA = 0.478802  # 1 Fann 35 dial degree (or lbf/100ft²) in Pa

def cp_to_pa_s(cp):
    """Convert centipoise to Pa·s."""
    return cp / 1000.0

def fann_dial_to_pa(dial):
    """Convert a Fann dial reading (lbf/100ft²) to shear stress in Pa."""
    return dial * FANN_DIAL_TO_PA

def m_per_min_to_m_per_s(v):
    return v / 60.0

def m3_per_min_to_m3_per_s(q):
    return q / 60.0

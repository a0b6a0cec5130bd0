def available_models():
    return [
            {
                "id": "newtonian",
                "name": "Newtonian",
                "parameters": ["viscosity"],
                "description": "Constant viscosity fluids such as water, brine and base oil"
            },
            {
                "id": "bingham",
                "name": "Bingham Plastic",
                "parameters": ["plastic_viscosity", "yield_point"],
                "description": "Linear stress/shear-rate fluid with a yield point, fitted from Fann 600/300"
            },
            {
                "id": "power_law",
                "name": "Power Law",
                "parameters": ["flow_index", "consistency"],
                "description": "Shear-thinning fluid without yield stress"
            },
            {
                "id": "herschel_bulkley",
                "name": "Herschel-Bulkley",
                "parameters": ["yield_stress", "flow_index", "consistency"],
                "description": "Yield-power-law fluid, fitted from Fann 600/300/3"
            }
        ]

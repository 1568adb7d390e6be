# src/thyroengine/constants.py
# Fixed model literals. Time is in DAYS, pools in micromoles, rates per day.

# --- Patient scaling (blood volume and clearance regressions) ---
IBW_MALE = (176.3, -220.6, 93.5)        # iBW = c0 + c1*h + c2*h^2, h in m
IBW_FEMALE = (145.8, -182.7, 79.55)
BV_A = 1.27
BV_N = 0.373
HEMATOCRIT = {"MALE": 0.45, "FEMALE": 0.40}
VP_REF = 1.144
VP_NORMAL = 3.2
VTSH_NORMAL = 5.2
BASE_K05 = 0.185
BW_REF = {"MALE": 76.97, "FEMALE": 57.49}   # kg, reference heights 1.75 m / 1.62 m
MALE_CLEARANCE_MULTIPLIER = 1.05
ALLOMETRIC_EXPONENT = 0.75

# --- Feedback model ---
B0 = 445.0           # basal TSH secretion
A0 = 133.5           # circadian amplitude
KM = 0.05
M_HILL = 6.0
KDEG_TSH = 16.0
S4 = 0.00278         # T4 secretion per unit TSH pool
KDEG_T4 = 0.1
S3 = 0.1106          # direct T3 secretion
K_T4_TO_T3 = 0.005

# --- Output transforms ---
T4_MOLAR_MASS = 777.0
T3_MOLAR_MASS = 651.0
TSH_SCALE = 5.6
LOG_TSH_FLOOR = 0.001

# --- Oral absorption (first-order, per day) ---
ORAL_ABSORPTION_RATE = {"T4": 0.96, "T3": 1.104}

# --- Integration ---
DT = 0.01
EQUILIBRATION_STEPS = 10_000

# Euthyroid starting pools (q1, q4, q7)
BASELINE_Q1 = 0.2727519456861839
BASELINE_Q4 = 0.6053134808855783
BASELINE_Q7 = 9.810946716614794

# Free fractions of total hormone (same units as the totals)
FT4_FRACTION = 0.0003
FT3_FRACTION = 0.003

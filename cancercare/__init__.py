"""
CancerCare AI Backend

Clinical cancer data dashboard API: patient records, treatment outcomes,
heuristic survival and drug-response scoring, and a cBioPortal clinical
data proxy.
"""

__version__ = "1.0.0"

"""
OTP Issuance and Verification
=============================
Password-reset codes: issue, verify with single-use semantics, sweep.
"""

from .models import OTPConfig, OtpOutcome
from .codes import generate_otp, is_well_formed
from .manager import OTPManager
from .sweeper import OTPSweeper
from .ticket import ResetTicket, TicketClaims

__all__ = [
    # Models
    "OTPConfig",
    "OtpOutcome",
    # Codes
    "generate_otp",
    "is_well_formed",
    # Manager
    "OTPManager",
    "OTPSweeper",
    # Reset Ticket
    "ResetTicket",
    "TicketClaims",
]

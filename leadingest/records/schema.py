from __future__ import annotations

from dataclasses import dataclass

"""Destination column tables for each record kind.

Each ``Column`` binds a canonical (database) column name to the header text
used in the uploaded spreadsheets. Column order here is the column order of
the generated INSERT statements and of the CREATE TABLE DDL.
"""

__all__ = [
    "Column",
    "MCA_COLUMNS",
    "IEC_COLUMNS",
    "GST_COLUMNS",
    "GST_BUSINESS_NATURE_SOURCE",
]


@dataclass(frozen=True)
class Column:
    name: str  # canonical column name in the destination table
    source: str  # header text in the uploaded sheet
    sql_type: str = "TEXT"

    @property
    def is_date(self) -> bool:
        return self.sql_type == "DATE"


MCA_COLUMNS: tuple[Column, ...] = (
    Column("company", "Company"),
    Column("cin", "CIN"),
    Column("c_email", "CEmail"),
    Column("date_of_registration", "DATE OF REGISTRATION", "DATE"),
    Column("roc", "ROC"),
    Column("category", "CATEGORY"),
    Column("class", "CLASS"),
    Column("subcategory", "SUBCATEGORY"),
    Column("authorized_capital", "AUTHORIZED CAPITAL"),
    Column("paidup_capital", "PAIDUP CAPITAL"),
    Column("activity_code", "ACTIVITY CODE"),
    Column("activity_description", "ACTIVITY DESCRIPTION"),
    Column("date_join", "DATE JOIN", "DATE"),
    Column("registered_office_address", "Registered Office Address"),
    Column("type_company", "TYPE COMPANY"),
    Column("din", "DIN"),
    Column("director_name", "DIRECTOR NAME"),
    Column("designation", "DESIGNATION"),
    Column("date_of_birth", "Date Of Birth", "DATE"),
    Column("mobile", "Mobile"),
    Column("email", "Email"),
    Column("gender", "Gender"),
    Column("pincode", "PINCODE"),
    Column("city", "City"),
    Column("state", "State"),
    Column("country", "COUNTRY"),
)

IEC_COLUMNS: tuple[Column, ...] = (
    Column("iec_code", "IEC"),
    Column("pan", "PAN"),
    Column("firm_name", "FIRM NAME"),
    Column("email", "EMAIL"),
    Column("mobile", "MOBILE"),
    Column("status", "STATUS"),
    Column("issue_date", "ISSUE DATE", "DATE"),
    Column("file_number", "FILE NUMBER"),
    Column("dgft_ra_office", "DGFT RA Office"),
    Column("dob", "DOB", "DATE"),
    Column("cancelled_date", "CANCELLED DATE", "DATE"),
    Column("suspended_date", "SUSPENDED DATE", "DATE"),
    Column("file_date", "FILE DATE", "DATE"),
    Column("nature", "NATURE"),
    Column("category", "CATEGORY"),
    Column("pincode", "PINCODE"),
    Column("address", "ADDRESS"),
)

GST_COLUMNS: tuple[Column, ...] = (
    Column("gstin", "GSTIN"),
    Column("registration_date", "Registration Date", "DATE"),
    Column("pan", "PAN"),
    Column("mobile", "Mobile"),
    Column("email", "Email"),
    Column("legal_name", "Legal Name"),
    Column("trade_name", "Trade Name"),
    Column("business_constitution", "Business constitution"),
    Column("pincode", "Pincode"),
    Column("address", "Address"),
)

# Multi-valued cell fanned out into gst_business_natures, not a gst_basics column
GST_BUSINESS_NATURE_SOURCE = "Business Nature"

"""Utility for resolving company names, IDs or GSTINs to IDs."""

from gstrecon.domain.companies import CompanyService


def resolve_company(company_service: CompanyService, company: str | int) -> int:
    """Resolve company name, ID or GSTIN to company ID.

    Args:
        company_service: CompanyService instance
        company: Company name, GSTIN, or ID (int or string representation of int)

    Returns:
        Company ID

    Raises:
        ValueError: If company is not found
    """
    if isinstance(company, int):
        if company_service.get_company(company) is None:
            raise ValueError(f"Company ID {company} not found")
        return company

    text = str(company).strip()
    if text.isdigit():
        company_id = int(text)
        if company_service.get_company(company_id) is None:
            raise ValueError(f"Company ID {company_id} not found")
        return company_id

    companies = company_service.list_companies()
    for comp in companies:
        if comp.name == text:
            return comp.id
    for comp in companies:
        if comp.gstin and comp.gstin == text.upper():
            return comp.id

    raise ValueError(f"Company '{company}' not found")

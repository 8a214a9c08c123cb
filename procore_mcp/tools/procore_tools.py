import json
import logging
from typing import Any, Dict, Optional
from procore_mcp.tools.registry import catalog, Param
from procore_mcp.core.context import ExecutionContext
from procore_mcp.core.procore_client import procore_request

logger = logging.getLogger(__name__)

@catalog.register(
    name="list-companies",
    description="List the Procore companies accessible to the current user.",
    error_message="Error fetching companies",
)
async def list_companies(context: ExecutionContext):
    logger.info("Listing companies")
    return await procore_request("/companies", context)

@catalog.register(
    name="list-projects",
    description="List the projects of a specific company in Procore.",
    params=[
        Param("company_id", "The ID of the company to get projects from", required=True, numeric=True),
    ],
    error_message="Error fetching projects",
)
async def list_projects(context: ExecutionContext, company_id: int):
    logger.info(f"Listing projects for company {company_id}")
    return await procore_request(f"/companies/{company_id}/projects", context)

@catalog.register(
    name="list-rfis",
    description="List the RFIs (Requests for Information) of a specific project in Procore.",
    params=[
        Param("project_id", "The ID of the project to get RFIs from", required=True, numeric=True),
    ],
    error_message="Error fetching RFIs",
)
async def list_rfis(context: ExecutionContext, project_id: int):
    logger.info(f"Listing RFIs for project {project_id}")
    return await procore_request(f"/projects/{project_id}/rfis", context)

def build_rfi_payload(
    subject: str,
    question: str,
    assignee_id: int,
    rfi_manager_id: int,
    due_date: str,
    location_id: Optional[int] = None,
    trade_id: Optional[int] = None,
    cost_code_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Builds the body of POST /projects/{id}/rfis.

    RFIs are always created as non-draft, assigned to a single user.
    """
    rfi: Dict[str, Any] = {
        "subject": subject,
        "question": {"body": question},
        "assignee_ids": [assignee_id],
        "rfi_manager_id": rfi_manager_id,
        "due_date": due_date,
        "draft": False,
    }
    optional = {"location_id": location_id, "trade_id": trade_id, "cost_code_id": cost_code_id}
    rfi.update({key: value for key, value in optional.items() if value is not None})
    return {"rfi": rfi}

@catalog.register(
    name="create-rfi",
    description="Create a new RFI (Request for Information) in a specific project in Procore. "
                "Use list-project-users to find valid assignee and RFI manager IDs.",
    params=[
        Param("project_id", "The ID of the project to create the RFI in", required=True, numeric=True),
        Param("subject", "The subject/title of the RFI", required=True),
        Param("question", "The main question or content of the RFI", required=True),
        Param("assignee_id", "The ID of the user to assign the RFI to", required=True, numeric=True),
        Param("rfi_manager_id", "The ID of the RFI manager", required=True, numeric=True),
        Param("due_date", "Due date for the RFI response (YYYY-MM-DD format)", required=True, format="date"),
        Param("location_id", "Optional location ID for the RFI", numeric=True),
        Param("trade_id", "Optional trade ID for the RFI", numeric=True),
        Param("cost_code_id", "Optional cost code ID for the RFI", numeric=True),
    ],
    error_message="Error creating RFI",
)
async def create_rfi(context: ExecutionContext, project_id: int, **fields):
    payload = build_rfi_payload(**fields)
    logger.info(f"Creating RFI in project {project_id}")
    logger.debug(f"RFI payload: {json.dumps(payload, ensure_ascii=False)}")
    return await procore_request(
        f"/projects/{project_id}/rfis?run_configurable_validations=true",
        context,
        method="POST",
        body=payload,
    )

@catalog.register(
    name="list-company-people",
    description="List the people of a specific company in Procore.",
    params=[
        Param("company_id", "The ID of the company to get people from", required=True, numeric=True),
    ],
    error_message="Error fetching company people",
)
async def list_company_people(context: ExecutionContext, company_id: int):
    logger.info(f"Listing people for company {company_id}")
    return await procore_request(f"/companies/{company_id}/people", context)

@catalog.register(
    name="list-project-users",
    description="List the users of a specific project in Procore (useful for finding valid assignee IDs for RFIs).",
    params=[
        Param("project_id", "The ID of the project to get users from", required=True, numeric=True),
    ],
    error_message="Error fetching project users",
)
async def list_project_users(context: ExecutionContext, project_id: int):
    logger.info(f"Listing users for project {project_id}")
    return await procore_request(f"/projects/{project_id}/users", context)

"""Bundled training datasets (Catalog) offered in the dataset picker."""
from typing import Optional

AND_GATE = """\
Input A,Input B,Output,Label
0,0,-1,FALSE
0,1,-1,FALSE
1,0,-1,FALSE
1,1,1,TRUE
"""

OR_GATE = """\
Input A,Input B,Output,Label
0,0,-1,FALSE
0,1,1,TRUE
1,0,1,TRUE
1,1,1,TRUE
"""

EXAM_RESULTS = """\
Hours Studied,Hours Slept,Result,Label
2,4,-1,Fail
3,5,-1,Fail
1,7,-1,Fail
4,3,-1,Fail
6,7,1,Pass
7,6,1,Pass
8,8,1,Pass
5,8,1,Pass
9,5,1,Pass
"""

# Income and debt in tens of thousands
LOAN_APPROVAL = """\
Income,Debt,Decision,Label
3,2,-1,Denied
4,3.5,-1,Denied
2.5,0.5,-1,Denied
5,4.5,-1,Denied
6,1,1,Approved
8,2,1,Approved
7.5,0.5,1,Approved
9,3,1,Approved
"""

PRESETS: dict[str, str] = {
    "AND Gate": AND_GATE,
    "OR Gate": OR_GATE,
    "Exam Results": EXAM_RESULTS,
    "Loan Approval": LOAN_APPROVAL,
}


def preset_names() -> list[str]:
    return list(PRESETS.keys())


def load_preset_text(name: str) -> Optional[str]:
    """Return the CSV text of a bundled dataset, or None for an unknown name."""
    return PRESETS.get(name)

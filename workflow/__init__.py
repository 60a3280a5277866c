"""
Course Plan Review Workflow
workflow/

Parts:
1. Form Schema     : question catalogue, ordering, activation rule, answer coercion
2. Validator       : remote language-model check with a deterministic fallback
3. Plan State      : draft / submitted / revision / approved transitions and permissions
4. Readiness       : completion statistics, submission gate, status summary
5. PDF Exporter    : render and store the submitted plan document
6. Errors          : error taxonomy surfaced by the API
"""

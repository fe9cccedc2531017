"""GraphQL documents sent to the Shopify Admin API."""

COA_METAOBJECT_TYPE = "certificates_of_analysis"
COA_PAGE_SIZE = 50

# Cursor and filter values travel as variables, never inside the document.
METAOBJECTS_QUERY = """
query CertificatesOfAnalysis($type: String!, $first: Int!, $after: String, $sortKey: String, $reverse: Boolean) {
  metaobjects(type: $type, first: $first, after: $after, sortKey: $sortKey, reverse: $reverse) {
    edges {
      node {
        id
        date: field(key: "date") { value }
        product_name: field(key: "product_name") { value }
        batch_number: field(key: "batch_number") { value }
        pdf_link: field(key: "pdf_link") { value }
        best_by_date: field(key: "best_by_date") { value }
      }
      cursor
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

__all__ = ["COA_METAOBJECT_TYPE", "COA_PAGE_SIZE", "METAOBJECTS_QUERY"]

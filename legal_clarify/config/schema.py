schema_document_analysis = {
    "description": "Plain-language explanation of what a legal document actually says",
    "type": "OBJECT",
    "properties": {
        "summary": {
            "description": "A simple summary of what this document is about in 1-2 sentences",
            "type": "STRING"
        },
        "keyPoints": {
            "description": "Main points from the document explained in simple bullet points",
            "type": "ARRAY",
            "items": {
                "type": "STRING"
            }
        },
        "importantTerms": {
            "description": "Important terms explained in everyday language",
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "term": {
                        "description": "The legal term or phrase as it appears in the document",
                        "type": "STRING"
                    },
                    "simpleExplanation": {
                        "description": "What the term means, explained in everyday language",
                        "type": "STRING"
                    }
                },
                "required": ["term", "simpleExplanation"]
            }
        },
        "thingsToKnow": {
            "description": "Important things you should know, explained simply",
            "type": "ARRAY",
            "items": {
                "type": "STRING"
            }
        },
        "warnings": {
            "description": "Things to be careful about, explained in simple terms",
            "type": "ARRAY",
            "items": {
                "type": "STRING"
            }
        }
    },
    "required": ["summary", "keyPoints", "importantTerms", "thingsToKnow", "warnings"]
}

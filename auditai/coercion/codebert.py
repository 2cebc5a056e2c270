# Hugging Face ("CodeBert") response coercion. The hosted instruct model is prompted with
# the same contract as OpenAI, so the generic coercion applies unchanged.

from auditai.coercion.gpt import GPTCoercer


class CodeBertCoercer(GPTCoercer):
    model = "CodeBert"

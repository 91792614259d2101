"""
分析编排器

驱动文档分析（cv / disc / interview）与候选人评估的
认领 -> 推理 -> 完成/失败 生命周期。

- 认领是单语句条件更新，同一 (申请, 类型) 同时只有一个 processing
- 完成/失败以认领令牌为条件，过期调用的结果被丢弃并记录日志
- 面试分析成功后在同一事务内前滚评估谱系、更新 ai_score、推进 interview -> interviewed
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from loguru import logger
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.events import ChangeBus, EntityKind
from app.core.exceptions import (
    AlreadyInProgressException,
    ConcurrencyConflictException,
    ConflictException,
    MissingBaselineEvaluationException,
    NotFoundException,
)
from app.crud import analysis_crud, application_crud, evaluation_crud, job_crud
from app.models.analysis import AnalysisKind, AnalysisRecord, AnalysisStatus
from app.models.application import Application
from app.models.base import new_id
from app.models.evaluation import EvaluationLineage
from app.schemas.analysis import (
    CandidateEvaluationPayload,
    CVAnalysisPayload,
    DISCAnalysisPayload,
    InterviewAnalysisPayload,
    parse_analysis_payload,
)
from app.schemas.inference import InferenceRequest, InferenceResponse
from .agents.inference import InferenceClient
from .lineage import evaluation_values, roll_forward
from .state_machine import apply_event
from .transitions import ApplicationEvent, TransitionFacts

EVALUATION_KIND = "evaluation"


@dataclass(frozen=True)
class Claim:
    """一次成功认领：令牌标识本次调用实例"""
    application_id: str
    kind: str
    token: str
    input_ref: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)


class AnalysisOrchestrator:
    """分析编排器"""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        inference: InferenceClient,
        bus: ChangeBus,
        *,
        default_baseline_score: Optional[int] = None,
        max_retries: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.inference = inference
        self.bus = bus
        self.default_baseline_score = (
            default_baseline_score if default_baseline_score is not None else settings.default_baseline_score
        )
        self.max_retries = max_retries if max_retries is not None else settings.transition_max_retries

    # ==================== 文档分析 ====================

    async def request_analysis(
        self,
        application_id: str,
        kind: str,
        input_ref: Optional[str] = None,
    ) -> AnalysisRecord:
        """认领并执行分析，返回终态记录"""
        claim = await self.claim_analysis(application_id, kind, input_ref)
        return await self.run_claimed(claim)

    async def claim_analysis(
        self,
        application_id: str,
        kind: str,
        input_ref: Optional[str] = None,
    ) -> Claim:
        """
        认领分析

        interview 类型先检查基线评估，缺失时不创建记录、不改变状态
        """
        kind = AnalysisKind(kind).value
        async with self.session_factory() as db:
            application = await self._get_application(db, application_id)
            if kind == AnalysisKind.INTERVIEW.value:
                lineage = await evaluation_crud.get_by_application(db, application_id)
                if lineage is None:
                    logger.info("Interview analysis refused, no baseline evaluation: application={}", application_id)
                    raise MissingBaselineEvaluationException(application_id)

            input_ref = input_ref or self._default_input_ref(application, kind)
            token = new_id()
            try:
                claimed = await analysis_crud.claim(db, application_id, kind, token=token, input_ref=input_ref)
            except IntegrityError:
                await db.rollback()
                claimed = False
            if not claimed:
                logger.info("Analysis already in progress: application={} kind={}", application_id, kind)
                raise AlreadyInProgressException(application_id, kind)
            # 上下文组装失败时认领随会话回滚，不留下 processing 记录
            context = await self._build_context(db, application, kind)
            await db.commit()

        logger.info("Analysis claimed: application={} kind={} token={}", application_id, kind, token)
        self.bus.emit(EntityKind.ANALYSIS, application_id)
        return Claim(application_id, kind, token, input_ref, context)

    async def run_claimed(self, claim: Claim) -> AnalysisRecord:
        """执行已认领的分析，返回记录的最新状态"""
        payload, error = await self._infer(claim)
        if payload is None:
            await self._fail_analysis(claim, error)
        elif isinstance(payload, InterviewAnalysisPayload):
            await self._complete_interview(claim, payload)
        else:
            await self._complete_document(claim, payload)
        return await self.get_analysis(claim.application_id, claim.kind)

    async def run_in_background(self, claim: Claim) -> None:
        """后台任务入口：异常只记录，不向外抛出"""
        try:
            if claim.kind == EVALUATION_KIND:
                await self.run_claimed_evaluation(claim)
            else:
                await self.run_claimed(claim)
        except Exception as exc:
            logger.exception(
                "Background run crashed: application={} kind={} error={}",
                claim.application_id, claim.kind, exc,
            )

    async def get_analysis(self, application_id: str, kind: str) -> AnalysisRecord:
        async with self.session_factory() as db:
            record = await analysis_crud.get_by_kind(db, application_id, AnalysisKind(kind).value)
        if record is None:
            raise NotFoundException(f"分析记录不存在: {application_id}/{kind}")
        return record

    async def reset_stuck_analysis(self, application_id: str, kind: str, actor_id: str) -> AnalysisRecord:
        """管理操作：把卡住的 processing 记录重置为 pending"""
        kind = AnalysisKind(kind).value
        async with self.session_factory() as db:
            reset = await analysis_crud.force_reset(db, application_id, kind)
            if not reset:
                record = await analysis_crud.get_by_kind(db, application_id, kind)
                if record is None:
                    raise NotFoundException(f"分析记录不存在: {application_id}/{kind}")
                raise ConflictException(
                    message=f"分析不在处理中，无需重置: {record.status}",
                    data={"application_id": application_id, "kind": kind, "status": record.status},
                )
            await db.commit()
        logger.warning("Analysis force-reset by {}: application={} kind={}", actor_id, application_id, kind)
        self.bus.emit(EntityKind.ANALYSIS, application_id)
        return await self.get_analysis(application_id, kind)

    async def _complete_document(
        self,
        claim: Claim,
        payload: Union[CVAnalysisPayload, DISCAnalysisPayload],
    ) -> bool:
        async with self.session_factory() as db:
            written = await analysis_crud.complete_if_owner(
                db, claim.application_id, claim.kind, claim.token,
                analysis=payload.model_dump(mode="json"),
                summary=payload.to_summary(),
            )
            if not written:
                await db.rollback()
                self._log_stale(claim)
                return False
            await db.commit()
        logger.info("Analysis completed: application={} kind={}", claim.application_id, claim.kind)
        self.bus.emit(EntityKind.ANALYSIS, claim.application_id)
        return True

    async def _complete_interview(self, claim: Claim, payload: InterviewAnalysisPayload) -> bool:
        """完成面试分析：记录、谱系、ai_score、状态在同一事务内提交"""
        for attempt in range(1, self.max_retries + 1):
            async with self.session_factory() as db:
                lineage = await evaluation_crud.get_by_application(db, claim.application_id, fresh=True)
                if lineage is None:
                    await db.rollback()
                    await self._fail_analysis(claim, "缺少基线评估，无法前滚评分")
                    return False

                rolled = roll_forward(lineage, payload, default_baseline_score=self.default_baseline_score)
                written = await analysis_crud.complete_if_owner(
                    db, claim.application_id, claim.kind, claim.token,
                    analysis=rolled.payload.model_dump(mode="json"),
                    summary=rolled.payload.to_summary(),
                )
                if not written:
                    await db.rollback()
                    self._log_stale(claim)
                    return False

                updated = await evaluation_crud.update_if_version(
                    db, lineage.id, expected_version=lineage.version, values=rolled.values,
                )
                if not updated:
                    await db.rollback()
                    logger.warning(
                        "Lineage version conflict: application={} version={} (attempt {}/{})",
                        claim.application_id, lineage.version, attempt, self.max_retries,
                    )
                    continue

                await application_crud.set_ai_score(db, claim.application_id, payload.new_overall_score)
                try:
                    await apply_event(
                        db,
                        claim.application_id,
                        ApplicationEvent.INTERVIEW_ANALYZED,
                        facts=TransitionFacts(interview_analysis_completed=True),
                        strict=False,
                        max_retries=self.max_retries,
                    )
                except ConcurrencyConflictException:
                    await db.rollback()
                    continue
                await db.commit()

            logger.info(
                "Interview analysis completed: application={} score {} -> {} (change {})",
                claim.application_id,
                rolled.explanation.previous_score,
                rolled.explanation.new_score,
                rolled.explanation.change,
            )
            self.bus.emit(EntityKind.ANALYSIS, claim.application_id)
            self.bus.emit(EntityKind.EVALUATION, claim.application_id)
            self.bus.emit(EntityKind.APPLICATION, claim.application_id)
            return True

        logger.warning("Interview analysis kept losing lineage race: application={}", claim.application_id)
        await self._fail_analysis(claim, "评估谱系并发更新冲突，请重试")
        return False

    async def _fail_analysis(self, claim: Claim, error: Optional[str]) -> bool:
        error = error or "推理失败"
        async with self.session_factory() as db:
            written = await analysis_crud.fail_if_owner(
                db, claim.application_id, claim.kind, claim.token, error=error,
            )
            if not written:
                await db.rollback()
                self._log_stale(claim)
                return False
            await db.commit()
        logger.error("Analysis failed: application={} kind={} error={}", claim.application_id, claim.kind, error)
        self.bus.emit(EntityKind.ANALYSIS, claim.application_id)
        return True

    # ==================== 候选人评估 ====================

    async def request_candidate_evaluation(self, application_id: str) -> Tuple[Application, Optional[EvaluationLineage]]:
        """认领并执行候选人评估，返回 (申请, 谱系)；失败原因见 application.evaluation_error"""
        claim = await self.claim_evaluation(application_id)
        await self.run_claimed_evaluation(claim)
        return await self.get_evaluation(application_id)

    async def claim_evaluation(self, application_id: str) -> Claim:
        async with self.session_factory() as db:
            application = await self._get_application(db, application_id)
            token = new_id()
            claimed = await application_crud.claim_evaluation(db, application_id, token)
            if not claimed:
                await db.rollback()
                logger.info("Candidate evaluation already in progress: application={}", application_id)
                raise AlreadyInProgressException(application_id, EVALUATION_KIND)
            context = await self._build_context(db, application, EVALUATION_KIND)
            await db.commit()

        logger.info("Candidate evaluation claimed: application={} token={}", application_id, token)
        self.bus.emit(EntityKind.EVALUATION, application_id)
        return Claim(application_id, EVALUATION_KIND, token, None, context)

    async def run_claimed_evaluation(self, claim: Claim) -> bool:
        """执行已认领的候选人评估，返回结果是否被写入"""
        payload, error = await self._infer(claim)
        if payload is None:
            return await self._finish_evaluation_failed(claim, error)

        values = evaluation_values(payload)
        for attempt in range(1, self.max_retries + 1):
            async with self.session_factory() as db:
                finished = await application_crud.finish_evaluation(
                    db, claim.application_id, claim.token, succeeded=True, ai_score=payload.overall_score,
                )
                if not finished:
                    await db.rollback()
                    self._log_stale(claim)
                    return False

                lineage = await evaluation_crud.get_by_application(db, claim.application_id, fresh=True)
                if lineage is None:
                    await evaluation_crud.create_initial(db, claim.application_id, values)
                else:
                    # 重新评估只覆盖当前字段，阶段与快照不变
                    updated = await evaluation_crud.update_if_version(
                        db, lineage.id, expected_version=lineage.version, values=values,
                    )
                    if not updated:
                        await db.rollback()
                        logger.warning(
                            "Lineage version conflict: application={} (attempt {}/{})",
                            claim.application_id, attempt, self.max_retries,
                        )
                        continue
                await db.commit()

            logger.info(
                "Candidate evaluation completed: application={} overall={}",
                claim.application_id, payload.overall_score,
            )
            self.bus.emit(EntityKind.EVALUATION, claim.application_id)
            self.bus.emit(EntityKind.APPLICATION, claim.application_id)
            return True

        return await self._finish_evaluation_failed(claim, "评估谱系并发更新冲突，请重试")

    async def _finish_evaluation_failed(self, claim: Claim, error: Optional[str]) -> bool:
        error = error or "推理失败"
        async with self.session_factory() as db:
            finished = await application_crud.finish_evaluation(
                db, claim.application_id, claim.token, succeeded=False, error=error,
            )
            if not finished:
                await db.rollback()
                self._log_stale(claim)
                return False
            await db.commit()
        logger.error("Candidate evaluation failed: application={} error={}", claim.application_id, error)
        self.bus.emit(EntityKind.EVALUATION, claim.application_id)
        return False

    async def get_evaluation(self, application_id: str) -> Tuple[Application, Optional[EvaluationLineage]]:
        async with self.session_factory() as db:
            application = await self._get_application(db, application_id)
            lineage = await evaluation_crud.get_by_application(db, application_id)
        return application, lineage

    async def reset_stuck_evaluation(self, application_id: str, actor_id: str) -> Application:
        """管理操作：把卡住的候选人评估重置为 pending"""
        async with self.session_factory() as db:
            application = await self._get_application(db, application_id)
            reset = await application_crud.reset_evaluation(db, application_id)
            if not reset:
                raise ConflictException(
                    message=f"候选人评估不在处理中，无需重置: {application.evaluation_status}",
                    data={"application_id": application_id, "evaluation_status": application.evaluation_status},
                )
            await db.commit()
            application = await application_crud.get_fresh(db, application_id)
        logger.warning("Candidate evaluation force-reset by {}: application={}", actor_id, application_id)
        self.bus.emit(EntityKind.EVALUATION, application_id)
        return application

    # ==================== 内部工具 ====================

    async def _infer(self, claim: Claim):
        """调用推理边界并按 kind 解析，返回 (payload, error)"""
        request = InferenceRequest(
            application_id=claim.application_id,
            kind=claim.kind,
            input_ref=claim.input_ref,
            context=claim.context,
        )
        try:
            response = await self.inference.infer(request)
        except Exception as exc:
            logger.error("Inference boundary raised: application={} kind={} error={}", claim.application_id, claim.kind, exc)
            response = InferenceResponse.fail(str(exc) or exc.__class__.__name__)

        if not response.success:
            return None, response.error or "推理失败"
        try:
            if claim.kind == EVALUATION_KIND:
                return CandidateEvaluationPayload.model_validate(response.payload or {}), None
            return parse_analysis_payload(claim.kind, response.payload or {}), None
        except ValidationError as exc:
            logger.error(
                "Inference payload rejected: application={} kind={} errors={}",
                claim.application_id, claim.kind, exc.error_count(),
            )
            return None, f"推理结果格式不符合要求: {exc.error_count()} 处错误"

    def _log_stale(self, claim: Claim) -> None:
        logger.warning(
            "Stale result discarded (ConcurrencyConflict): application={} kind={} token={}",
            claim.application_id, claim.kind, claim.token,
        )

    async def _get_application(self, db: AsyncSession, application_id: str) -> Application:
        application = await application_crud.get(db, application_id)
        if application is None:
            raise NotFoundException(f"申请不存在: {application_id}")
        return application

    @staticmethod
    def _default_input_ref(application: Application, kind: str) -> Optional[str]:
        if kind == AnalysisKind.CV.value:
            return application.cv_url
        if kind == AnalysisKind.DISC.value:
            return application.disc_url
        return application.notes

    async def _build_context(self, db: AsyncSession, application: Application, kind: str) -> Dict[str, Any]:
        """组装推理上下文：岗位、候选人、已有评估与分析摘要"""
        job = await job_crud.get(db, application.job_id)
        context: Dict[str, Any] = {
            "candidate_name": application.candidate_name,
            "notes": application.notes,
            "business_case_completed": application.business_case_completed,
        }
        if job is not None:
            context.update({
                "job_title": job.title,
                "job_description": job.description,
                "job_requirements": list(job.requirements or []),
                "job_responsibilities": list(job.responsibilities or []),
            })

        lineage = await evaluation_crud.get_by_application(db, application.id)
        if lineage is not None:
            context["previous_evaluation"] = {
                "overall_score": lineage.overall_score,
                "skills_match_score": lineage.skills_match_score,
                "communication_score": lineage.communication_score,
                "cultural_fit_score": lineage.cultural_fit_score,
                "recommendation": lineage.recommendation,
            }

        if kind == EVALUATION_KIND:
            records = await analysis_crud.list_by_application(db, application.id)
            context["analyses"] = {
                r.kind: r.summary
                for r in records
                if r.status == AnalysisStatus.COMPLETED.value and r.summary
            }
        return context
